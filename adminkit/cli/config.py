"""
Config CLI commands.

Handles the server URL, session token and permission grants stored in
the adminkit configuration file.
"""

import click

from adminkit.src.auth import PermissionSet
from adminkit.src.config import AdminConfig, ConfigValidationError


def _config(ctx: click.Context) -> AdminConfig:
    return ctx.obj["config"]


# ============================================================================
# Config Command Group
# ============================================================================


@click.group()
@click.pass_context
def config(ctx: click.Context) -> None:
    """
    Manage adminkit configuration.
    """
    ctx.ensure_object(dict)


@config.command("show")
@click.pass_context
def show(ctx: click.Context) -> None:
    """
    Display the current configuration.

    The session token is masked.
    """
    admin_config = _config(ctx)
    token = admin_config.api_token
    masked = f"{token[:4]}…" if token else "(not set)"

    click.echo(f"Config file:   {admin_config.config_path}")
    click.echo(f"Server URL:    {admin_config.server_url or '(not set)'}")
    click.echo(f"Session token: {masked}")
    click.echo(f"Log level:     {admin_config.log_level}")
    click.echo(f"Page size:     {admin_config.page_size}")
    click.echo(f"Lookup limit:  {admin_config.lookup_limit}")

    if admin_config.permissions:
        click.echo("Permissions:")
        for grant in admin_config.permissions:
            click.echo(f"  • {grant}")
    else:
        click.echo("Permissions:   (none)")


@config.command("set-server")
@click.argument("url")
@click.pass_context
def set_server(ctx: click.Context, url: str) -> None:
    """
    Set the API server URL.

    Example:

        adminkit config set-server https://admin.example.com
    """
    admin_config = _config(ctx)
    admin_config.server_url = url.rstrip("/")
    try:
        admin_config.validate()
    except ConfigValidationError as e:
        raise click.ClickException(str(e))

    admin_config.save()
    click.echo(click.style("Server URL updated: ", fg="green") + admin_config.server_url)


@config.command("set-token")
@click.argument("token")
@click.pass_context
def set_token(ctx: click.Context, token: str) -> None:
    """
    Store the session token used to authenticate requests.
    """
    admin_config = _config(ctx)
    admin_config.api_token = token
    admin_config.save()
    click.echo(click.style("Session token updated.", fg="green"))


@config.command("grant")
@click.argument("grant")
@click.pass_context
def grant(ctx: click.Context, grant: str) -> None:
    """
    Add a permission grant.

    GRANT has the form service:entity:operation; any part may be '*'.

    Example:

        adminkit config grant project:billings:create
    """
    admin_config = _config(ctx)
    try:
        normalized = ":".join(PermissionSet.parse(grant))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="GRANT")

    if normalized in admin_config.permissions:
        click.echo(f"Already granted: {normalized}")
        return

    admin_config.permissions.append(normalized)
    admin_config.save()
    click.echo(click.style("Granted: ", fg="green") + normalized)


@config.command("revoke")
@click.argument("grant")
@click.pass_context
def revoke(ctx: click.Context, grant: str) -> None:
    """
    Remove a permission grant.
    """
    admin_config = _config(ctx)
    try:
        normalized = ":".join(PermissionSet.parse(grant))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="GRANT")

    if normalized not in admin_config.permissions:
        click.echo(click.style("Not granted: ", fg="yellow") + normalized)
        return

    admin_config.permissions.remove(normalized)
    admin_config.save()
    click.echo(click.style("Revoked: ", fg="green") + normalized)
