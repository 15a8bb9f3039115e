"""
Relational execution record store (SQLAlchemy).

Table:
- changerun_executions: one row per execution id

The primary key on execution_id is what makes check-and-lock atomic across
processes: the second INSERT for the same id fails with IntegrityError.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum as SQLEnum,
    String,
    create_engine,
    text,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from ..errors import LockAcquisitionError, PersistEngineUnavailableError
from .base import ExecutionRecord, ExecutionStatus, PersistEngine

logger = logging.getLogger(__name__)

Base = declarative_base()


class ExecutionModel(Base):
    """Execution record table."""
    __tablename__ = "changerun_executions"

    execution_id = Column(String, primary_key=True, index=True)
    status = Column(SQLEnum(ExecutionStatus), nullable=True, index=True)
    locked = Column(Boolean, nullable=False, default=True)
    lock_date = Column(DateTime, nullable=False, default=datetime.utcnow)
    unlock_date = Column(DateTime, nullable=True)
    logs = Column(JSON, default=[])


def _to_record(model: ExecutionModel) -> ExecutionRecord:
    return ExecutionRecord(
        execution_id=model.execution_id,
        status=model.status,
        locked=bool(model.locked),
        lock_date=model.lock_date.isoformat() if model.lock_date else None,
        unlock_date=model.unlock_date.isoformat() if model.unlock_date else None,
        logs=list(model.logs or []),
    )


class SqlPersistEngine(PersistEngine):
    """Store backed by any database SQLAlchemy can reach."""

    def __init__(self, url: str = "sqlite:///./changerun.db", echo: bool = False):
        """
        Initialize the store and create its table.

        Args:
            url: SQLAlchemy database URL
            echo: Log emitted SQL

        Raises:
            PersistEngineUnavailableError: Invalid URL or unreachable database
        """
        self.url = url
        try:
            self.engine = create_engine(
                url,
                connect_args={"check_same_thread": False} if url.startswith("sqlite") else {},
                echo=echo,
            )
        except SQLAlchemyError as e:
            raise PersistEngineUnavailableError(f"Invalid database URL {url}: {e}") from e
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        self.init_db()

    def init_db(self) -> None:
        """
        Create the table if missing.

        Raises:
            PersistEngineUnavailableError: If the database cannot be reached
        """
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            self.engine.dispose()
            raise PersistEngineUnavailableError(f"Cannot reach {self.engine.url}: {e}") from e

    def check_connection(self) -> None:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise PersistEngineUnavailableError(f"Cannot reach {self.engine.url}: {e}") from e

    def not_already_executed(self, execution_id: str) -> bool:
        db = self.SessionLocal()
        try:
            model = db.get(ExecutionModel, execution_id)
            if model is None:
                return True
            if model.locked:
                logger.warning(f"{execution_id} is still locked (interrupted run?), not executing it")
            return False
        finally:
            db.close()

    def lock(self, execution_id: str) -> None:
        db = self.SessionLocal()
        try:
            db.add(ExecutionModel(
                execution_id=execution_id,
                status=None,
                locked=True,
                lock_date=datetime.utcnow(),
                logs=[],
            ))
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise LockAcquisitionError(execution_id, "record already exists") from e
        finally:
            db.close()

    def unlock(self, execution_id: str, status: ExecutionStatus, logs: List[str]) -> None:
        db = self.SessionLocal()
        try:
            model = db.get(ExecutionModel, execution_id)
            if model is None:
                model = ExecutionModel(execution_id=execution_id, lock_date=datetime.utcnow())
                db.add(model)
            model.status = status
            model.locked = False
            model.unlock_date = datetime.utcnow()
            model.logs = list(logs)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistEngineUnavailableError(f"Cannot record {execution_id}: {e}") from e
        finally:
            db.close()

    def get_record(self, execution_id: str) -> Optional[ExecutionRecord]:
        db = self.SessionLocal()
        try:
            model = db.get(ExecutionModel, execution_id)
            return _to_record(model) if model is not None else None
        finally:
            db.close()

    def list_records(self) -> List[ExecutionRecord]:
        db = self.SessionLocal()
        try:
            models = (
                db.query(ExecutionModel)
                .order_by(ExecutionModel.lock_date.asc(), ExecutionModel.execution_id.asc())
                .all()
            )
            return [_to_record(model) for model in models]
        finally:
            db.close()

    def dispose(self) -> None:
        """Close pooled connections."""
        self.engine.dispose()
