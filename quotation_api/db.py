from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session
from .config import settings


def normalize_database_url(db_url: str) -> str:
    # Render иногда выдаёт postgres:// — меняем на новую схему драйвера
    if db_url.startswith("postgres://"):
        return db_url.replace("postgres://", "postgresql+psycopg://", 1)
    if db_url.startswith("postgresql://") and "+psycopg" not in db_url:
        return db_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return db_url


db_url = normalize_database_url(settings.DATABASE_URL)

if db_url.startswith("sqlite"):
    # Локальный запуск и тесты: одно соединение на весь процесс,
    # сессии ходят в него из пула потоков
    engine = create_engine(
        db_url,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    engine = create_engine(db_url, pool_pre_ping=True)

def init_db() -> None:
    SQLModel.metadata.create_all(engine)

def get_session():
    with Session(engine) as session:
        yield session
