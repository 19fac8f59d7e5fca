"""
Rule query layer.

Main Components:
- fields: FieldRegistry, the queryable fields and the operators each one accepts
- rules: rule tree parsing (Condition / Group)
- builder: PredicateCompiler, rule tree to SQLAlchemy WHERE clause
- engine: QueryExecutor, sorting, pagination, batching and hydration
"""
