from sqlmodel import SQLModel, create_engine

from gainz.config import DATABASE_URL

engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False})

# Enable WAL mode for better read performance
if DATABASE_URL.startswith("sqlite:///") and ":memory:" not in DATABASE_URL:
    with engine.connect() as _conn:
        _conn.exec_driver_sql("PRAGMA journal_mode=WAL")


def create_db_and_tables() -> None:
    SQLModel.metadata.create_all(engine)
