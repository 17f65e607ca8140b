"""Test CLI functionality."""

import json

import pytest
from click.testing import CliRunner

from crform import cli as cli_module
from crform.cli import cli
from crform.client import ChangeRequestClient
from crform.errors import ClientError
from crform.models import ChangeRequest, Comment, HistoryEntry, User


@pytest.fixture
def runner(tmp_path, monkeypatch, schema_data):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli_module, "setup_log", lambda *args, **kwargs: None)
    (tmp_path / "form.json").write_text(json.dumps(schema_data), encoding="utf-8")
    (tmp_path / "config.toml").write_text(
        '[api]\nbase_url = "http://cr.example.com/api/v1"\ntoken = "jwt"\n\n[form]\nschema_file = "form.json"\n',
        encoding="utf-8",
    )
    return CliRunner()


def _cr(**overrides):
    data = {
        "cr_id": 3,
        "requester_user_id": 1,
        "requester_team_id": 2,
        "title": "Add orders",
        "config_changes_payload": '{"service": {"name": "orders"}}',
        "approval_status": "PENDING_APPROVAL",
        "execution_status": "DRAFT",
    }
    data.update(overrides)
    return ChangeRequest.model_validate(data)


def _write_payload(path, document):
    path.write_text(json.dumps(document), encoding="utf-8")
    return str(path)


def _as_user(monkeypatch, cr, **fields):
    monkeypatch.setattr(ChangeRequestClient, "get_change_request", lambda self, cr_id: cr)
    monkeypatch.setattr(ChangeRequestClient, "get_current_user", lambda self: User(**fields))


def test_init(runner):
    result = runner.invoke(cli, ["init"])
    assert result.exit_code == 0, result.output
    document = json.loads(result.output)
    assert document["routes"] == [{"path": "", "methods": ["GET"]}]


def test_schema(runner):
    result = runner.invoke(cli, ["schema"])
    assert result.exit_code == 0
    assert json.loads(result.output)["pageTitle"] == "Gateway"


def test_bundled_schema_without_config(runner, tmp_path):
    (tmp_path / "config.toml").unlink()
    result = runner.invoke(cli, ["schema"])
    assert result.exit_code == 0
    assert json.loads(result.output)["pageTitle"] == "API Configuration"


def test_missing_explicit_config(runner):
    result = runner.invoke(cli, ["-c", "other.toml", "init"])
    assert result.exit_code == 1
    assert "Configuration file not found" in result.output


def test_validate_ok(runner, tmp_path):
    payload = _write_payload(tmp_path / "cr.json", {"service": {"name": "orders"}, "routes": [{"path": "/a"}]})
    result = runner.invoke(cli, ["validate", payload])
    assert result.exit_code == 0
    assert "Payload is valid" in result.output


def test_validate_errors(runner, tmp_path):
    payload = _write_payload(tmp_path / "cr.json", {"service": {"url": "ftp://x"}, "routes": [{"path": "/a"}]})
    result = runner.invoke(cli, ["validate", payload])
    assert result.exit_code == 1
    assert "service.name\tName is required" in result.output
    assert "service.url\tMust be a valid HTTP/HTTPS URL" in result.output
    assert "2 invalid field(s)" in result.output


def test_render(runner, tmp_path):
    payload = _write_payload(tmp_path / "cr.json", {"service": {}, "routes": [{}, {}]})
    result = runner.invoke(cli, ["render", payload, "--with-errors"])
    assert result.exit_code == 0
    view = json.loads(result.output)
    assert len(view["elements"][1]["instances"]) == 2
    assert view["errors"]["service.name"] == "Name is required"


def test_list(runner, monkeypatch):
    captured = {}

    def fake_list(self, **filters):
        captured.update(filters)
        captured["token"] = self.token
        return [_cr()]

    monkeypatch.setattr(ChangeRequestClient, "list_change_requests", fake_list)

    result = runner.invoke(cli, ["list", "--approval-status", "PENDING_APPROVAL"])

    assert result.exit_code == 0
    assert "3\tPENDING_APPROVAL\tDRAFT\t2\tAdd orders" in result.output
    assert captured["approval_status"] == "PENDING_APPROVAL"
    assert captured["token"] == "jwt"


def test_show(runner, monkeypatch):
    monkeypatch.setattr(ChangeRequestClient, "get_change_request", lambda self, cr_id: _cr(cr_id=cr_id))
    monkeypatch.setattr(
        ChangeRequestClient,
        "get_comments",
        lambda self, cr_id: [Comment(comment_id=1, cr_id=cr_id, user_id=1, comment_text="LGTM")],
    )
    monkeypatch.setattr(
        ChangeRequestClient,
        "get_history",
        lambda self, cr_id: [
            HistoryEntry(history_id=1, cr_id=cr_id, changed_by_user_id=1, event_type="CREATED", new_status="PENDING_APPROVAL")
        ],
    )

    result = runner.invoke(cli, ["show", "3"])

    assert result.exit_code == 0
    assert '"name": "orders"' in result.output
    assert "LGTM" in result.output
    assert "CREATED: - -> PENDING_APPROVAL" in result.output


def test_submit(runner, monkeypatch, tmp_path):
    calls = []

    def fake_create(self, title, payload, team_id):
        calls.append((title, json.loads(payload), team_id))
        return _cr(title=title)

    monkeypatch.setattr(ChangeRequestClient, "create_change_request", fake_create)
    payload = _write_payload(tmp_path / "cr.json", {"service": {"name": "orders"}, "routes": [{"path": "/a"}]})

    result = runner.invoke(cli, ["submit", payload, "--title", "Add orders", "--team", "2"])

    assert result.exit_code == 0, result.output
    title, document, team_id = calls[0]
    assert (title, team_id) == ("Add orders", 2)
    assert document["routes"] == [{"path": "/a", "methods": ["GET"]}]


def test_submit_blocked_by_errors(runner, monkeypatch, tmp_path):
    monkeypatch.setattr(ChangeRequestClient, "create_change_request", lambda *a: pytest.fail("must not be sent"))
    payload = _write_payload(tmp_path / "cr.json", {"routes": [{"path": "/a"}]})

    result = runner.invoke(cli, ["submit", payload, "--title", "t", "--team", "2"])

    assert result.exit_code == 1
    assert "service.name\tName is required" in result.output


def test_submit_requires_team_or_update(runner, tmp_path):
    payload = _write_payload(tmp_path / "cr.json", {"service": {"name": "orders"}, "routes": [{"path": "/a"}]})
    result = runner.invoke(cli, ["submit", payload, "--title", "t"])
    assert result.exit_code == 2


def test_review_client_error(runner, monkeypatch):
    def fake_review(self, cr_id, decision):
        raise ClientError("Only super managers can review", status_code=403)

    _as_user(monkeypatch, _cr(), user_id=5, is_super_manager=True)
    monkeypatch.setattr(ChangeRequestClient, "review_change_request", fake_review)

    result = runner.invoke(cli, ["review", "3", "--decision", "APPROVED"])

    assert result.exit_code == 1
    assert "Only super managers can review" in result.output


def test_execute(runner, monkeypatch):
    _as_user(monkeypatch, _cr(approval_status="APPROVED"), user_id=5, is_gateway_editor=True)
    monkeypatch.setattr(
        ChangeRequestClient,
        "update_execution_status",
        lambda self, cr_id, status: _cr(approval_status="APPROVED", execution_status=status),
    )
    result = runner.invoke(cli, ["execute", "3", "--status", "COMPLETED"])
    assert result.exit_code == 0
    assert "APPROVED\tCOMPLETED" in result.output


def test_comment(runner, monkeypatch):
    monkeypatch.setattr(
        ChangeRequestClient,
        "add_comment",
        lambda self, cr_id, text: Comment(comment_id=9, cr_id=cr_id, user_id=1, comment_text=text),
    )
    result = runner.invoke(cli, ["comment", "3", "Looks good"])
    assert result.exit_code == 0
    assert "Comment 9 added" in result.output


def _as_user(monkeypatch, cr, **fields):
    monkeypatch.setattr(ChangeRequestClient, "get_change_request", lambda self, cr_id: cr)
    monkeypatch.setattr(ChangeRequestClient, "get_current_user", lambda self: User(**fields))


def test_logging_uses_configured_log_file(runner, monkeypatch, tmp_path):
    calls = []
    monkeypatch.setattr(cli_module, "setup_log", lambda log_file=None: calls.append(log_file))
    (tmp_path / "config.toml").write_text('log_file = "logs/cli.log"\n\n[form]\nschema_file = "form.json"\n', encoding="utf-8")

    result = runner.invoke(cli, ["init"])

    assert result.exit_code == 0, result.output
    assert calls == ["logs/cli.log"]


def test_submit_update_by_requester(runner, monkeypatch, tmp_path):
    calls = []

    def fake_update(self, cr_id, title, payload):
        calls.append((cr_id, title))
        return _cr(cr_id=cr_id, title=title)

    _as_user(monkeypatch, _cr(), user_id=1)
    monkeypatch.setattr(ChangeRequestClient, "update_change_request", fake_update)
    payload = _write_payload(tmp_path / "cr.json", {"service": {"name": "orders"}, "routes": [{"path": "/a"}]})

    result = runner.invoke(cli, ["submit", payload, "--title", "Renamed", "--update", "3"])

    assert result.exit_code == 0, result.output
    assert calls == [(3, "Renamed")]


@pytest.mark.parametrize(
    "cr, user_id",
    [
        (_cr(), 99),
        (_cr(approval_status="APPROVED"), 1),
    ],
)
def test_submit_update_refused_when_read_only(runner, monkeypatch, tmp_path, cr, user_id):
    _as_user(monkeypatch, cr, user_id=user_id)
    monkeypatch.setattr(ChangeRequestClient, "update_change_request", lambda *a: pytest.fail("must not be sent"))
    payload = _write_payload(tmp_path / "cr.json", {"service": {"name": "orders"}, "routes": [{"path": "/a"}]})

    result = runner.invoke(cli, ["submit", payload, "--title", "t", "--update", "3"])

    assert result.exit_code == 1
    assert "read-only" in result.output


def test_review_refused_for_non_super_manager(runner, monkeypatch):
    _as_user(monkeypatch, _cr(), user_id=5, is_gateway_editor=True)
    monkeypatch.setattr(ChangeRequestClient, "review_change_request", lambda *a: pytest.fail("must not be sent"))

    result = runner.invoke(cli, ["review", "3", "--decision", "APPROVED"])

    assert result.exit_code == 1
    assert "cannot be reviewed" in result.output


def test_review_refused_when_not_pending(runner, monkeypatch):
    _as_user(monkeypatch, _cr(approval_status="REJECTED"), user_id=5, is_super_manager=True)
    monkeypatch.setattr(ChangeRequestClient, "review_change_request", lambda *a: pytest.fail("must not be sent"))

    result = runner.invoke(cli, ["review", "3", "--decision", "APPROVED"])

    assert result.exit_code == 1
    assert "cannot be reviewed" in result.output


def test_execute_refused_before_approval(runner, monkeypatch):
    _as_user(monkeypatch, _cr(), user_id=5, is_gateway_editor=True)
    monkeypatch.setattr(ChangeRequestClient, "update_execution_status", lambda *a: pytest.fail("must not be sent"))

    result = runner.invoke(cli, ["execute", "3", "--status", "IN_PROGRESS"])

    assert result.exit_code == 1
    assert "cannot be executed" in result.output


def test_execute_refused_for_non_gateway_editor(runner, monkeypatch):
    _as_user(monkeypatch, _cr(approval_status="APPROVED"), user_id=5, is_super_manager=True)
    monkeypatch.setattr(ChangeRequestClient, "update_execution_status", lambda *a: pytest.fail("must not be sent"))

    result = runner.invoke(cli, ["execute", "3", "--status", "IN_PROGRESS"])

    assert result.exit_code == 1
    assert "cannot be executed" in result.output
