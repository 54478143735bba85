import importlib

import pytest
from fastapi.testclient import TestClient

from wellness_backend import main
from wellness_backend.core import config


def test_root_reports_running() -> None:
    client = TestClient(main.app)

    response = client.get('/')

    assert response.status_code == 200
    assert response.json() == {'status': 'Wellness Booking API Running'}


def test_app_exposes_booking_routes() -> None:
    assert main.app.url_path_for('get_time_slots_for_date', practitioner_id=7) == '/practitioners/7/slots'
    assert main.app.url_path_for('update_block', practitioner_id=7, block_id=3) == '/practitioners/7/blocks/3'
    assert main.app.url_path_for('reschedule', appointment_id=5) == '/appointments/5/reschedule'


def test_slot_grid_ignores_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv('SLOT_STEP_MINUTES', '15')

    reloaded = importlib.reload(config)

    assert reloaded.SLOT_STEP_MINUTES == 30


def test_runtime_config_rejects_non_positive_horizon(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'BOOKING_HORIZON_DAYS', 0)

    with pytest.raises(RuntimeError, match='BOOKING_HORIZON_DAYS'):
        config.validate_runtime_config()


def test_runtime_config_requires_database_url_in_production(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'APP_ENV', 'production')
    monkeypatch.delenv('DATABASE_URL', raising=False)

    with pytest.raises(RuntimeError, match='DATABASE_URL'):
        config.validate_runtime_config()


def test_config_helpers_parse_environment_strings() -> None:
    assert config._get_bool(' Yes ') is True
    assert config._get_bool(None, default=True) is True
    assert config._get_int('', 30) == 30
    assert config._get_int('15', 30) == 15
    assert config._get_list('http://a, ,http://b', []) == ['http://a', 'http://b']
