"""
Builder.io API migrators and helpers.

This subpackage checks whether a WordPress item already has a Builder.io
entry and creates new entries through the Write API.  It encapsulates rate
limiting, automatic retries and bearer header injection.
"""
