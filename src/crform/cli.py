"""CLI main entry point."""

import json
import logging
from pathlib import Path

import click

from .client import ChangeRequestClient
from .config import Config
from .consts import DEFAULT_CONFIG_FILE
from .enums import ApprovalStatus, ExecutionStatus, ReviewDecision
from .errors import CrformException, FormValidationError, PermissionDeniedError
from .log import setup as setup_log
from .models import ChangeRequest, can_edit, can_execute, can_review
from .schema import resolve_schema
from .session import FormSession

logger = logging.getLogger(__name__)


def _load_config(ctx) -> Config:
    config_path = ctx.obj["config_path"]
    if config_path == DEFAULT_CONFIG_FILE and not Path(config_path).exists():
        config_path = None
    cfg = Config.load_from_file(config_path)
    setup_log(cfg.log_file)
    return cfg


def _load_session(cfg: Config, payload_file: str | None, editable: bool = True) -> FormSession:
    schema = resolve_schema(cfg.form.schema_file)
    if payload_file is None:
        return FormSession.new(schema)
    payload = Path(payload_file).read_text(encoding="utf-8")
    return FormSession.from_payload(schema, payload, editable=editable)


def _echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _echo_errors(errors: dict[str, str]) -> None:
    for path, message in errors.items():
        click.echo(f"{path}\t{message}", err=True)


def _format_change_request(cr: ChangeRequest) -> str:
    team = cr.requester_team.name if cr.requester_team and cr.requester_team.name else cr.requester_team_id
    return f"{cr.cr_id}\t{cr.approval_status.value}\t{cr.execution_status.value}\t{team}\t{cr.title}"


def _run(action):
    try:
        return action()
    except FormValidationError as e:
        _echo_errors(e.errors)
        raise click.ClickException(str(e))
    except CrformException as e:
        logger.error(f"Application error: {e}", exc_info=True)
        raise click.ClickException(str(e))


@click.group()
@click.option("--config", "-c", default=DEFAULT_CONFIG_FILE, help="Configuration file path")
@click.pass_context
def cli(ctx, config: str):
    """crform - change-request form engine for API gateway configuration."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config


@cli.command(name="schema")
@click.pass_context
def show_schema(ctx):
    """Print the form schema in use."""

    def action():
        cfg = _load_config(ctx)
        schema = resolve_schema(cfg.form.schema_file)
        _echo_json(schema.model_dump(by_alias=True, exclude_none=True))

    _run(action)


@cli.command(name="init")
@click.pass_context
def init_document(ctx):
    """Print the default document for a new change request."""

    def action():
        session = _load_session(_load_config(ctx), None)
        _echo_json(session.document)

    _run(action)


@cli.command(name="validate")
@click.argument("payload_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def validate_payload(ctx, payload_file: str):
    """Validate a JSON payload file against the form schema."""

    def action():
        session = _load_session(_load_config(ctx), payload_file)
        errors = session.validate()
        if errors:
            _echo_errors(errors)
            raise click.ClickException(f"{len(errors)} invalid field(s)")
        click.echo("Payload is valid")

    _run(action)


@cli.command(name="render")
@click.argument("payload_file", type=click.Path(exists=True, dir_okay=False), required=False)
@click.option("--with-errors", is_flag=True, default=False, help="Validate before rendering")
@click.pass_context
def render_payload(ctx, payload_file: str | None, with_errors: bool):
    """Print the rendered field tree for a payload (or a new document)."""

    def action():
        session = _load_session(_load_config(ctx), payload_file)
        if with_errors:
            session.validate()
        _echo_json(session.render().model_dump(mode="json"))

    _run(action)


@cli.command(name="login")
@click.option("--username", "-u", prompt=True)
@click.option("--password", "-p", prompt=True, hide_input=True)
@click.pass_context
def login(ctx, username: str, password: str):
    """Log in and print a token for CRFORM_API__TOKEN."""

    def action():
        client = ChangeRequestClient.from_config(_load_config(ctx).api)
        result = client.login(username, password)
        click.echo(result.token)

    _run(action)


@cli.command(name="list")
@click.option("--approval-status", type=click.Choice([s.value for s in ApprovalStatus]))
@click.option("--execution-status", type=click.Choice([s.value for s in ExecutionStatus]))
@click.option("--team", "team_id", type=int, default=None)
@click.pass_context
def list_change_requests(ctx, approval_status, execution_status, team_id):
    """List change requests."""

    def action():
        client = ChangeRequestClient.from_config(_load_config(ctx).api)
        change_requests = client.list_change_requests(
            approval_status=approval_status,
            execution_status=execution_status,
            team_id=team_id,
        )
        click.echo("id\tapproval\texecution\tteam\ttitle")
        for cr in change_requests:
            click.echo(_format_change_request(cr))

    _run(action)


@cli.command(name="show")
@click.argument("cr_id", type=int)
@click.pass_context
def show_change_request(ctx, cr_id: int):
    """Show a change request with its document, comments and history."""

    def action():
        cfg = _load_config(ctx)
        client = ChangeRequestClient.from_config(cfg.api)
        cr = client.get_change_request(cr_id)
        session = FormSession.from_change_request(resolve_schema(cfg.form.schema_file), cr, editable=False)
        click.echo(_format_change_request(cr))
        _echo_json(session.document)

        for comment in client.get_comments(cr_id):
            author = comment.user.username if comment.user else comment.user_id
            click.echo(f"[{comment.created_at}] {author}: {comment.comment_text}")
        for entry in client.get_history(cr_id):
            click.echo(f"[{entry.timestamp}] {entry.event_type}: {entry.old_status or '-'} -> {entry.new_status}")

    _run(action)


@cli.command(name="submit")
@click.argument("payload_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--title", "-t", required=True)
@click.option("--team", "team_id", type=int, default=None, help="Team for a new change request")
@click.option("--update", "cr_id", type=int, default=None, help="Update this change request instead")
@click.pass_context
def submit(ctx, payload_file: str, title: str, team_id: int | None, cr_id: int | None):
    """Validate a payload and create (or update) a change request."""

    def action():
        if cr_id is None and team_id is None:
            raise click.UsageError("Either --team or --update is required")

        cfg = _load_config(ctx)
        client = ChangeRequestClient.from_config(cfg.api)
        if cr_id is not None:
            current = client.get_change_request(cr_id)
            editable = can_edit(current, client.get_current_user())
            if not editable:
                logger.info(f"Change request #{cr_id} is read-only for the current user")
            session = _load_session(cfg, payload_file, editable=editable)
            cr = session.save(client, cr_id, title)
        else:
            session = _load_session(cfg, payload_file)
            cr = session.submit(client, title, team_id)
        click.echo(_format_change_request(cr))

    _run(action)


@cli.command(name="review")
@click.argument("cr_id", type=int)
@click.option("--decision", type=click.Choice([d.value for d in ReviewDecision]), required=True)
@click.pass_context
def review(ctx, cr_id: int, decision: str):
    """Approve or reject a pending change request."""

    def action():
        client = ChangeRequestClient.from_config(_load_config(ctx).api)
        cr = client.get_change_request(cr_id)
        if not can_review(cr, client.get_current_user()):
            raise PermissionDeniedError(
                f"Change request #{cr_id} cannot be reviewed: "
                f"a super manager is required and the request must be {ApprovalStatus.PENDING_APPROVAL.value}"
            )
        click.echo(_format_change_request(client.review_change_request(cr_id, decision)))

    _run(action)


@cli.command(name="execute")
@click.argument("cr_id", type=int)
@click.option("--status", type=click.Choice([s.value for s in ExecutionStatus]), required=True)
@click.pass_context
def execute(ctx, cr_id: int, status: str):
    """Move an approved change request through execution."""

    def action():
        client = ChangeRequestClient.from_config(_load_config(ctx).api)
        cr = client.get_change_request(cr_id)
        if not can_execute(cr, client.get_current_user()):
            raise PermissionDeniedError(
                f"Change request #{cr_id} cannot be executed: "
                f"a gateway editor is required and the request must be {ApprovalStatus.APPROVED.value}"
            )
        click.echo(_format_change_request(client.update_execution_status(cr_id, status)))

    _run(action)


@cli.command(name="comment")
@click.argument("cr_id", type=int)
@click.argument("text")
@click.pass_context
def comment(ctx, cr_id: int, text: str):
    """Comment on a change request."""

    def action():
        client = ChangeRequestClient.from_config(_load_config(ctx).api)
        created = client.add_comment(cr_id, text)
        click.echo(f"Comment {created.comment_id} added")

    _run(action)


@cli.command(name="serve")
@click.option("--host", "-h", default=None, help="Override host from config")
@click.option("--port", "-p", default=None, type=int, help="Override port from config")
@click.pass_context
def serve(ctx, host, port):
    """Start the headless form service."""
    import uvicorn

    from .api import create_app

    def action():
        cfg = _load_config(ctx)
        app = create_app(cfg)

        bind_host = host or cfg.web.host
        bind_port = port or cfg.web.port
        logger.info(f"Starting form service on {bind_host}:{bind_port}")
        uvicorn.run(app, host=bind_host, port=bind_port)

    _run(action)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
