from sqlmodel import Field, SQLModel


class StorageItem(SQLModel, table=True):
    key: str = Field(primary_key=True)
    value: str  # JSON encoded


class LocalWorkout(SQLModel, table=True):
    id: str = Field(primary_key=True)
    user_id: str = Field(index=True)
    name: str
    date: int  # epoch ms
    started_at: int
    finished_at: int | None = None
    completed: bool = False
    payload: str  # full Workout as JSON


class SyncState(SQLModel, table=True):
    workout_id: str = Field(primary_key=True)
    synced: bool = False
    last_sync_attempt: int
    retry_count: int = 0


class SyncQueueEntry(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    workout_id: str = Field(index=True, unique=True)
