"""
Dialect aware upsert helpers (PostgreSQL in production, SQLite in tests)
"""
from sqlalchemy import select
from app import db


def _dialect_insert():
    dialect = db.session.get_bind().dialect.name
    if dialect == 'postgresql':
        from sqlalchemy.dialects.postgresql import insert
        return insert
    if dialect == 'sqlite':
        from sqlalchemy.dialects.sqlite import insert
        return insert
    return None


def insert_ignore(model, index_elements, **values):
    """INSERT ... ON CONFLICT DO NOTHING; returns True if a row was inserted"""
    insert = _dialect_insert()
    if insert is None:
        filters = {column: values[column] for column in index_elements}
        if db.session.execute(select(model).filter_by(**filters)).first():
            return False
        db.session.add(model(**values))
        db.session.flush()
        return True

    stmt = insert(model.__table__).values(**values).on_conflict_do_nothing(index_elements=index_elements)
    return db.session.execute(stmt).rowcount == 1


def upsert(model, index_elements, values, update_columns):
    """INSERT ... ON CONFLICT DO UPDATE, replacing update_columns outright"""
    insert = _dialect_insert()
    if insert is None:
        filters = {column: values[column] for column in index_elements}
        row = db.session.execute(select(model).filter_by(**filters)).scalar_one_or_none()
        if row is None:
            db.session.add(model(**values))
        else:
            for column in update_columns:
                setattr(row, column, values[column])
        db.session.flush()
        return

    stmt = insert(model.__table__).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=index_elements,
        set_={column: stmt.excluded[column] for column in update_columns}
    )
    db.session.execute(stmt)
