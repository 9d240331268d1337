"""
Top-level package for the WordPress → Builder.io migration utility.

This package bundles all components required to read pages, posts and
users from the WordPress REST API, convert rendered HTML into Builder.io
element trees, upload the resulting page documents through the Builder.io
Write API and report on the run.  Modules are split into subpackages:

* :mod:`src.extractors` – WordPress REST client and JWT token handling
* :mod:`src.parsers` – HTML to Builder.io block converters
* :mod:`src.migrators` – Builder.io API interactions
* :mod:`src.utils` – error types, event logging, pre-flight checks and reports

Each layer has no direct knowledge of configuration or execution
strategy; orchestration is handled in the migration_tool.
"""
