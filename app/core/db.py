# app/core/db.py

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from app.core.config import settings
from app.utils.logger import get_logger

# --- Configure logging ---
logger = get_logger(__name__)

# --- Create database engine ---
engine = create_engine(settings.db_url, pool_pre_ping=True)

# --- Create sessionmaker ---
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# --- Create declarative base ---
Base = declarative_base()


def get_db():
    """
    Method for obtaining database session object
    """
    db = SessionLocal()
    try:
        yield db
        logger.info("Committing DB transaction")
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error("Error in DB transaction", error_message=str(e))
        raise e
    finally:
        db.close()
