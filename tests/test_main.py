import json

import pytest

import main
from services import ServiceManager


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(main, "setup_from_config", lambda app_config: None)


def test_seed_prints_demo_owner(capsys):
    assert main.main(["--database-url", "sqlite://", "seed", "--name", "Ani", "--reminder-time", "08:00"]) == 0

    data = json.loads(capsys.readouterr().out)
    assert data["ownerId"] == 1
    assert [habit["title"] for habit in data["habits"]] == [title for title, _, _ in main.DEMO_HABITS]


def test_init_db_and_remind(tmp_path):
    url = f"sqlite:///{tmp_path / 'cli.db'}"

    assert main.main(["--database-url", url, "init-db"]) == 0
    assert main.main(["--database-url", url, "remind"]) == 0


def test_command_is_required():
    with pytest.raises(SystemExit):
        main.main([])


def test_service_manager_lifecycle():
    with ServiceManager() as manager:
        assert manager.initialize_services("sqlite://") is True
        assert manager.health_check() == {"status": "healthy", "initialized": True, "database": True}
        assert manager.schedule_service.store is manager.database

    assert manager.database is None
    assert manager.health_check()["status"] == "error"
