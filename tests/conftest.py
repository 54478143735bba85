import os
from datetime import time

import pytest
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from wellness_backend.database import Base, build_engine  # noqa: E402
from wellness_backend.models.appointment import Appointment  # noqa: E402
from wellness_backend.models.availability import AvailabilityBlockRow, WorkingHoursRow  # noqa: E402

PRACTITIONER_ID = 7


@pytest.fixture
def session_factory(tmp_path):
    # File-backed so the snapshot worker threads see the same data.
    engine = build_engine(f'sqlite:///{tmp_path / "booking.db"}')
    Base.metadata.create_all(
        bind=engine,
        tables=[WorkingHoursRow.__table__, AvailabilityBlockRow.__table__, Appointment.__table__],
    )
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    try:
        yield factory
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def working_hours_row(db):
    row = WorkingHoursRow(
        practitioner_id=PRACTITIONER_ID,
        working_start_time=time(9, 0),
        working_end_time=time(18, 0),
        working_days=[1, 2, 3, 4, 5],
        per_day_schedule=None,
    )
    db.add(row)
    db.commit()
    return row


@pytest.fixture(autouse=True)
def skip_schema_guard(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('wellness_backend.routes.dependencies.ensure_appointment_schema', lambda: None)
