import pytest
from sqlalchemy import create_engine, inspect

from scripts import init_db
from scripts.release import run_release


def _tables(db_url):
    engine = create_engine(db_url)
    try:
        return set(inspect(engine).get_table_names())
    finally:
        engine.dispose()


def test_init_schema_and_seed_are_idempotent(tmp_path, monkeypatch):
    monkeypatch.delenv("DEFAULT_COUNTRY", raising=False)
    db_url = f"sqlite:///{tmp_path/'init.db'}"

    init_db.init_schema(database_url=db_url)
    assert {"customers", "addresses", "transactions"} <= _tables(db_url)

    assert init_db.seed_only(database_url=db_url) is True
    assert init_db.seed_only(database_url=db_url) is False


def test_release_runs_migrations_then_app_sees_seed(tmp_path, monkeypatch):
    db_url = f"sqlite:///{tmp_path/'release.db'}"
    monkeypatch.setenv("DATABASE_URL", db_url)
    monkeypatch.setenv("SEED_ON_START", "1")

    run_release()
    assert {"customers", "addresses", "transactions", "alembic_version"} <= _tables(db_url)

    # running twice is safe
    run_release()

    from app.custmgr import create_app

    monkeypatch.setenv("AUTO_CREATE_SCHEMA", "0")
    client = create_app().test_client()
    body = client.get("/api/customers", query_string={"sortBy": "first_name", "sortDir": "ASC"}).json
    assert body["total"] == 2
    assert [row["first_name"] for row in body["data"]] == ["Alice", "Ravi"]


def test_release_requires_database_url(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        run_release()


def test_start_execs_gunicorn_with_env_settings(monkeypatch):
    from scripts import start

    calls = []
    env = {"PORT": "5050", "WEB_CONCURRENCY": "3"}
    monkeypatch.setattr(start.os, "environ", env)
    monkeypatch.setattr(start.os, "execvp", lambda file, args: calls.append((file, args)))

    start.main(["--skip-release"])

    assert calls == [("gunicorn", start.gunicorn_argv(5050, 3))]
    argv = calls[0][1]
    assert argv[1] == "app.wsgi:app"
    assert argv[argv.index("--bind") + 1] == "0.0.0.0:5050"
    assert env["AUTO_CREATE_SCHEMA"] == "0"


@pytest.mark.parametrize("port", ["0", "70000", "http"])
def test_start_rejects_bad_port(monkeypatch, port):
    from scripts import start

    monkeypatch.setenv("PORT", port)
    monkeypatch.setattr(start.os, "execvp", lambda *a: pytest.fail("should not exec"))
    with pytest.raises(SystemExit) as exc:
        start.main(["--skip-release"])
    assert exc.value.code == 1
