"""
Record CLI commands.

Terminal rendition of the generic admin pages:
- list: List page with filters, sorting and pagination
- show: View page
- create / edit: Create and edit forms (validated, authorization-gated)
- delete: Row deletion from the list page
- lookup: Linked-record search for a reference field
"""

import asyncio
import sys
from typing import Any, Dict, List, Optional, Tuple

import click

from adminkit.src.api_client import AdminApiClient, ApiError
from adminkit.src.config import AdminConfig
from adminkit.src.entities import EntityDescriptor, FieldKind
from adminkit.src.exceptions import AuthorizationError, QueryValidationError
from adminkit.src.form_controller import FormController, FormState
from adminkit.src.linked_records import LinkedOption, LinkedRecordField, LinkedRecordResolver
from adminkit.src.navigation import Navigator
from adminkit.src.pages import ListPage, ViewPage
from adminkit.src.query import SortOrder
from adminkit.src.resource_client import ResourceClient
from adminkit.src.resources import default_registry


REGISTRY = default_registry()


# ============================================================================
# Helpers
# ============================================================================


def _fail(message: str) -> None:
    click.echo(click.style("Error: ", fg="red", bold=True) + message)
    sys.exit(1)


def _load_config(ctx: click.Context) -> AdminConfig:
    config: AdminConfig = ctx.obj["config"]
    if not config.is_configured:
        _fail("No server URL configured. Run 'adminkit config set-server URL' first.")
    return config


def _entity(name: str) -> EntityDescriptor:
    try:
        return REGISTRY.get(name)
    except KeyError:
        raise click.BadParameter(
            f"Unknown entity '{name}'. Known entities: {', '.join(REGISTRY.names())}",
            param_hint="ENTITY",
        )


def _open_api(config: AdminConfig) -> AdminApiClient:
    return AdminApiClient(
        server_url=config.server_url,
        api_token=config.api_token or None,
        timeout=config.request_timeout,
    )


def parse_value(entity: EntityDescriptor, name: str, raw: str) -> Any:
    """
    Convert a command-line string to the field's value kind.

    An empty string clears reference fields.

    Raises:
        click.BadParameter: On unknown fields or unparsable values
    """
    if not entity.has_field(name):
        raise click.BadParameter(f"'{entity.name}' has no field '{name}'")

    kind = entity.get_field(name).kind
    try:
        if kind is FieldKind.NUMBER:
            return float(raw)
        if kind is FieldKind.INTEGER:
            return int(raw)
    except ValueError:
        raise click.BadParameter(f"'{name}' expects a {kind.value}, got '{raw}'")
    if kind is FieldKind.REFERENCE and raw == "":
        return None
    return raw


def parse_assignments(entity: EntityDescriptor, pairs: Tuple[str, ...]) -> Dict[str, Any]:
    """Parse repeated field=value options."""
    values: Dict[str, Any] = {}
    for pair in pairs:
        name, sep, raw = pair.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"Expected field=value, got '{pair}'")
        values[name.strip()] = parse_value(entity, name.strip(), raw)
    return values


def _format_value(value: Any) -> str:
    return "-" if value is None else str(value)


def _echo_table(entity: EntityDescriptor, records: List[Dict[str, Any]]) -> None:
    columns = ["id"] + entity.writable_fields
    rows = [[_format_value(record.get(column)) for column in columns] for record in records]
    widths = [
        max([len(entity.get_field(column).label)] + [len(row[i]) for row in rows])
        for i, column in enumerate(columns)
    ]
    header = "  ".join(
        entity.get_field(column).label.ljust(width) for column, width in zip(columns, widths)
    )
    click.echo(click.style(header, bold=True))
    for row in rows:
        click.echo("  ".join(cell.ljust(width) for cell, width in zip(row, widths)))


def _echo_form_outcome(form: FormController, navigator: Navigator, verb: str) -> None:
    if form.state is FormState.SUCCESS:
        record_id = form.record.get("id") if form.record else None
        click.echo(click.style(f"{verb} {form.entity.label}: ", fg="green") + str(record_id))
        click.echo(f"  → {navigator.current}")
        return

    if form.field_errors:
        click.echo(click.style("Validation failed:", fg="red", bold=True))
        for name, message in form.field_errors.items():
            click.echo(f"  {name}: {message}")
        sys.exit(1)

    if form.error is not None:
        _fail(str(form.error))


async def _apply_links(
    form: FormController,
    resolver: LinkedRecordResolver,
    links: Dict[str, str],
    debounce: float,
) -> None:
    """Resolve label searches into reference ids on the form draft."""
    for field_name, text in links.items():
        link = LinkedRecordField(form, field_name, resolver, REGISTRY, debounce=debounce)
        await link.input(text)
        option = _pick_option(link.options, text)
        if option is None:
            labels = ", ".join(o.label for o in link.options) or "none"
            raise click.BadParameter(
                f"'{text}' does not identify a single {link.related.label} (matches: {labels})",
                param_hint=f"--link {field_name}",
            )
        link.select(option)


def _pick_option(options: List[LinkedOption], text: str) -> Optional[LinkedOption]:
    exact = [o for o in options if o.label.lower() == text.strip().lower()]
    if len(exact) == 1:
        return exact[0]
    if len(options) == 1:
        return options[0]
    return None


def _parse_links(entity: EntityDescriptor, pairs: Tuple[str, ...]) -> Dict[str, str]:
    links: Dict[str, str] = {}
    for pair in pairs:
        name, sep, text = pair.partition("=")
        name = name.strip()
        if not sep or not entity.has_field(name) or entity.get_field(name).kind is not FieldKind.REFERENCE:
            raise click.BadParameter(f"Expected reference_field=text, got '{pair}'")
        links[name] = text
    return links


# ============================================================================
# list
# ============================================================================


@click.command("list")
@click.argument("entity_name", metavar="ENTITY")
@click.option("--filter", "-f", "filters", multiple=True, help="Filter as field=value (repeatable).")
@click.option("--offset", default=0, type=int, show_default=True, help="Records to skip.")
@click.option("--limit", default=None, type=int, help="Page size (defaults to configured page size).")
@click.option("--order-by", default=None, help="Sort field.")
@click.option("--desc", is_flag=True, default=False, help="Sort descending.")
@click.pass_context
def list_records(
    ctx: click.Context,
    entity_name: str,
    filters: Tuple[str, ...],
    offset: int,
    limit: Optional[int],
    order_by: Optional[str],
    desc: bool,
) -> None:
    """List records of ENTITY.

    \b
    Examples:
        adminkit list billings
        adminkit list billings -f order_summary=dinner --order-by total_value --desc
    """
    config = _load_config(ctx)
    entity = _entity(entity_name)
    filter_values = parse_assignments(entity, filters)

    async def _run() -> ListPage:
        async with _open_api(config) as api:
            page = ListPage(
                entity,
                ResourceClient(api, entity),
                config.authorization_context(),
                Navigator(),
                page_size=limit if limit is not None else config.page_size,
            )
            await page.mount()
            await page.load(
                filters=filter_values,
                offset=offset,
                order_by=order_by,
                order=SortOrder.DESC if desc else SortOrder.ASC,
            )
            return page

    try:
        page = asyncio.run(_run())
    except AuthorizationError as e:
        _fail(f"{e} (redirected to {e.redirect_to})")
    except QueryValidationError as e:
        _fail(e.message)

    if page.error is not None:
        _fail(str(page.error))

    result = page.page
    if not result.records:
        click.echo(f"No {entity.label.lower()} found.")
        return

    _echo_table(entity, result.records)
    shown_to = result.offset + len(result.records)
    click.echo()
    click.echo(f"Showing {result.offset + 1}-{shown_to} of {result.total_count}")


# ============================================================================
# show
# ============================================================================


@click.command("show")
@click.argument("entity_name", metavar="ENTITY")
@click.argument("record_id")
@click.pass_context
def show(ctx: click.Context, entity_name: str, record_id: str) -> None:
    """Show one record of ENTITY."""
    config = _load_config(ctx)
    entity = _entity(entity_name)

    async def _run() -> ViewPage:
        async with _open_api(config) as api:
            view = ViewPage(
                entity,
                ResourceClient(api, entity),
                config.authorization_context(),
                Navigator(),
                record_id=record_id,
            )
            await view.mount()
            return view

    try:
        view = asyncio.run(_run())
    except AuthorizationError as e:
        _fail(f"{e} (redirected to {e.redirect_to})")

    if view.error is not None:
        _fail(str(view.error))

    click.echo(click.style(f"{entity.label} {record_id}", bold=True))
    for spec in entity.fields:
        click.echo(f"  {spec.label}: {_format_value(view.record.get(spec.name))}")
    for name, count in (view.record.get("_count") or {}).items():
        click.echo(f"  {name.replace('_', ' ').title()} count: {count}")


# ============================================================================
# create / edit
# ============================================================================


@click.command("create")
@click.argument("entity_name", metavar="ENTITY")
@click.option("--set", "-s", "assignments", multiple=True, help="Field value as field=value (repeatable).")
@click.option("--link", "-l", "links", multiple=True, help="Reference by label as field=text (repeatable).")
@click.pass_context
def create(
    ctx: click.Context,
    entity_name: str,
    assignments: Tuple[str, ...],
    links: Tuple[str, ...],
) -> None:
    """Create a record of ENTITY.

    \b
    Examples:
        adminkit create billings -s "order_summary=Table 5 dinner" -s total_value=42.50 -s table_number=5
        adminkit create billings -s "order_summary=Lunch" -s total_value=12 -l restaurant_id=Luigi
    """
    config = _load_config(ctx)
    entity = _entity(entity_name)
    values = parse_assignments(entity, assignments)
    link_texts = _parse_links(entity, links)
    navigator = Navigator()

    async def _run() -> FormController:
        async with _open_api(config) as api:
            form = FormController(
                entity,
                ResourceClient(api, entity),
                config.authorization_context(),
                navigator,
            )
            await form.mount()
            for name, value in values.items():
                form.set_field(name, value)
            await _apply_links(
                form, _resolver(api, config), link_texts, config.lookup_debounce_ms / 1000
            )
            await form.submit()
            return form

    _run_form(_run, navigator, "Created")


@click.command("edit")
@click.argument("entity_name", metavar="ENTITY")
@click.argument("record_id")
@click.option("--set", "-s", "assignments", multiple=True, help="Field value as field=value (repeatable).")
@click.option("--link", "-l", "links", multiple=True, help="Reference by label as field=text (repeatable).")
@click.pass_context
def edit(
    ctx: click.Context,
    entity_name: str,
    record_id: str,
    assignments: Tuple[str, ...],
    links: Tuple[str, ...],
) -> None:
    """Edit a record of ENTITY; only changed fields are sent."""
    config = _load_config(ctx)
    entity = _entity(entity_name)
    values = parse_assignments(entity, assignments)
    link_texts = _parse_links(entity, links)
    navigator = Navigator()

    async def _run() -> FormController:
        async with _open_api(config) as api:
            form = FormController(
                entity,
                ResourceClient(api, entity),
                config.authorization_context(),
                navigator,
                record_id=record_id,
            )
            await form.mount()
            if form.error is not None:
                return form
            for name, value in values.items():
                form.set_field(name, value)
            await _apply_links(
                form, _resolver(api, config), link_texts, config.lookup_debounce_ms / 1000
            )
            await form.submit()
            return form

    _run_form(_run, navigator, "Updated")


def _resolver(api: AdminApiClient, config: AdminConfig) -> LinkedRecordResolver:
    return LinkedRecordResolver(lambda related: ResourceClient(api, related), limit=config.lookup_limit)


def _run_form(run, navigator: Navigator, verb: str) -> None:
    try:
        form = asyncio.run(run())
    except AuthorizationError as e:
        _fail(f"{e} (redirected to {e.redirect_to})")
    except (KeyError, ValueError) as e:
        _fail(str(e))
    except ApiError as e:
        _fail(str(e))

    _echo_form_outcome(form, navigator, verb)


# ============================================================================
# delete
# ============================================================================


@click.command("delete")
@click.argument("entity_name", metavar="ENTITY")
@click.argument("record_id")
@click.option("--yes", "-y", is_flag=True, default=False, help="Do not ask for confirmation.")
@click.pass_context
def delete(ctx: click.Context, entity_name: str, record_id: str, yes: bool) -> None:
    """Delete a record of ENTITY."""
    config = _load_config(ctx)
    entity = _entity(entity_name)

    if not yes:
        click.confirm(f"Delete {entity.label} {record_id}?", abort=True)

    async def _run() -> Tuple[ListPage, bool]:
        async with _open_api(config) as api:
            page = ListPage(
                entity,
                ResourceClient(api, entity),
                config.authorization_context(),
                Navigator(),
            )
            await page.mount()
            deleted = await page.delete(record_id)
            return page, deleted

    try:
        page, deleted = asyncio.run(_run())
    except AuthorizationError as e:
        _fail(f"{e} (redirected to {e.redirect_to})")

    if not deleted:
        _fail(str(page.error))
    click.echo(click.style(f"Deleted {entity.label}: ", fg="green") + record_id)


# ============================================================================
# lookup
# ============================================================================


@click.command("lookup")
@click.argument("entity_name", metavar="ENTITY")
@click.argument("field_name", metavar="FIELD")
@click.argument("text", default="")
@click.pass_context
def lookup(ctx: click.Context, entity_name: str, field_name: str, text: str) -> None:
    """Search options for reference FIELD of ENTITY.

    Without TEXT, the first options are listed unfiltered.

    \b
    Examples:
        adminkit lookup billings restaurant_id lui
    """
    config = _load_config(ctx)
    entity = _entity(entity_name)
    try:
        related = REGISTRY.related(entity, field_name)
    except (KeyError, ValueError) as e:
        raise click.BadParameter(str(e), param_hint="FIELD")

    async def _run() -> List[LinkedOption]:
        async with _open_api(config) as api:
            resolver = _resolver(api, config)
            return [option async for option in resolver.search(related, text)]

    try:
        options = asyncio.run(_run())
    except ApiError as e:
        _fail(str(e))

    if not options:
        click.echo(f"No {related.label.lower()} match '{text}'.")
        return
    for option in options:
        click.echo(f"{option.id}  {option.label}")
