"""
Database infrastructure.

- `studyforge.core.database.base`: declarative Base and column mixins
- `studyforge.core.database.service`: the async DatabaseService

Submodules are imported directly; this package stays import-free so ORM
models can depend on `base` without pulling in the service.
"""
