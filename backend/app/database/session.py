from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from app.core.config import DATABASE_URL, SWAP_LOCK_TIMEOUT_MS

if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not configured. Set the environment variable before starting the API.")

connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    # SQLite has no row locks; writers wait on the busy timeout instead.
    connect_args = {"check_same_thread": False, "timeout": SWAP_LOCK_TIMEOUT_MS / 1000}

engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,
    connect_args=connect_args,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
