"""
Pydantic records shared by the migration pipeline.

* :mod:`models.builder_page` – source items, Builder.io block nodes and
  page documents
* :mod:`models.migration_state` – steps, run state, statistics and the
  final report
"""
