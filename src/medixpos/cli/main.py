"""medixpos CLI -- inspect entitlements and manage the license.

Commands:
    tier                Show the current tier and its plan info
    features            List available (or blocked) features
    feature             Check a single feature
    page                Check access to a route
    component           Check whether a component may render
    limits              Check usage against a feature's caps
    upgrade             Show the upgrade that unlocks a feature
    catalog validate    Validate a plan catalog YAML file
    catalog show        Print the active plan catalog
    license validate    Validate the stored or a new license key
    license activate    Activate a license key on this machine
    license deactivate  Release this machine's activation
    license info        Show the stored license state
    license clear       Forget the stored license
    license machine-id  Show the machine id for support
    serve               Run the licensing API server
"""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any

import click

from medixpos import __version__
from medixpos.bootstrap import build_catalog, build_feature_licensing, build_license_service
from medixpos.config import MedixConfig, load_config
from medixpos.entitlements import EntitlementContext, FeatureLicensingService
from medixpos.licensing.service import LicenseService
from medixpos.models import LicenseTier, LimitResource
from medixpos.plans.catalog import CatalogError
from medixpos.plans.evaluator import features_for_route
from medixpos.plans.loader import catalog_digest, load_catalog
from medixpos.plans.routes import canonical_route

_TIER_CHOICE = click.Choice([t.value for t in LicenseTier], case_sensitive=False)

_TIER_COLORS = {
    LicenseTier.TRIAL: "white",
    LicenseTier.LITE: "green",
    LicenseTier.BASIC: "blue",
    LicenseTier.PRO: "magenta",
}


def _resolve_cfg(config_file: str | None = None) -> MedixConfig:
    """Load config from medixpos.yaml (explicit path, or auto-discover)."""
    try:
        return load_config(config_file)
    except FileNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except (ValueError, OSError) as e:
        click.echo(f"Error loading config: {e}", err=True)
        sys.exit(1)


def _licensing(ctx: click.Context, tier: str | None) -> FeatureLicensingService:
    """Build the entitlement service for a command.

    With *tier* the check runs offline against that tier. Otherwise the
    tier is derived from the stored license.
    """
    cfg = _resolve_cfg(ctx.obj.get("config_file"))
    try:
        if tier:
            return FeatureLicensingService(
                catalog=build_catalog(cfg),
                context=EntitlementContext(LicenseTier(tier.upper())),
            )
        licensing = build_feature_licensing(cfg)
    except CatalogError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    asyncio.run(licensing.initialize())
    return licensing


def _license_service(ctx: click.Context) -> LicenseService:
    cfg = _resolve_cfg(ctx.obj.get("config_file"))
    return build_license_service(cfg)


def _emit(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _yes_no(ok: bool, yes: str = "ALLOWED", no: str = "DENIED") -> str:
    return click.style(yes, fg="green", bold=True) if ok else click.style(
        no, fg="red", bold=True,
    )


def _parse_usage(entries: tuple[str, ...]) -> dict[LimitResource, int]:
    """Parse --usage RESOURCE=N args into a usage dict."""
    usage: dict[LimitResource, int] = {}
    for entry in entries:
        if "=" not in entry:
            raise click.BadParameter(
                f"must be RESOURCE=N, got: {entry}", param_hint="--usage",
            )
        name, value = entry.split("=", 1)
        try:
            usage[LimitResource(name.strip())] = int(value)
        except ValueError:
            valid = ", ".join(r.value for r in LimitResource)
            raise click.BadParameter(
                f"invalid usage {entry!r} (resources: {valid})",
                param_hint="--usage",
            ) from None
    return usage


tier_option = click.option(
    "--tier", type=_TIER_CHOICE, default=None,
    help="Evaluate against this tier instead of the stored license",
)
json_option = click.option("--json-output", is_flag=True, help="Output as JSON")


# --- Root group ---


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config", "config_file", default=None,
    help="Path to medixpos.yaml (default: auto-discover)",
)
@click.pass_context
def cli(ctx: click.Context, config_file: str | None) -> None:
    """MedixPOS licensing: feature entitlements by license tier."""
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file


# --- entitlement commands ---


@cli.command()
@tier_option
@json_option
@click.pass_context
def tier(ctx: click.Context, tier: str | None, json_output: bool) -> None:
    """Show the current tier and its plan info."""
    licensing = _licensing(ctx, tier)
    current = licensing.get_current_tier()
    info = licensing.get_current_tier_info()

    if json_output:
        _emit({"tier": current.value, "tier_info": info.model_dump(mode="json")})
        return

    click.echo(click.style(info.name, fg=_TIER_COLORS[current], bold=True)
               + f"  ({current.value})")
    click.echo(f"  {info.description}")
    if info.price:
        click.echo(f"  price: {info.price}")
    for line in info.features:
        click.echo(f"  + {line}")
    for line in info.limitations:
        click.echo(f"  - {line}")


@cli.command()
@tier_option
@click.option("--blocked", is_flag=True, help="List features the tier lacks")
@json_option
@click.pass_context
def features(
    ctx: click.Context, tier: str | None, blocked: bool, json_output: bool,
) -> None:
    """List available (or blocked) features."""
    licensing = _licensing(ctx, tier)
    items = (
        licensing.get_blocked_features() if blocked
        else licensing.get_available_features()
    )

    if json_output:
        _emit([f.model_dump(mode="json") for f in items])
        return

    if not items:
        click.echo("No features.")
        return
    for f in items:
        click.echo(
            f"  {f.id:<24} "
            + click.style(f"[{f.required_tier.value}]", fg=_TIER_COLORS[f.required_tier])
            + f"  {f.name}"
        )
    label = "blocked" if blocked else "available"
    click.echo(
        f"\n{len(items)} feature(s) {label} on "
        f"{licensing.get_current_tier().value}."
    )


@cli.command()
@click.argument("feature_id")
@tier_option
@json_option
@click.pass_context
def feature(
    ctx: click.Context, feature_id: str, tier: str | None, json_output: bool,
) -> None:
    """Check whether FEATURE_ID is enabled."""
    licensing = _licensing(ctx, tier)
    enabled = licensing.is_feature_enabled(feature_id)
    limitations = licensing.get_feature_limitations(feature_id)

    if json_output:
        _emit({
            "feature": feature_id,
            "tier": licensing.get_current_tier().value,
            "enabled": enabled,
            "limitations": (
                limitations.model_dump(mode="json", exclude_none=True)
                if limitations else None
            ),
        })
        return

    click.echo(_yes_no(enabled, "ENABLED", "DISABLED") + f"  {feature_id}")
    if feature_id not in licensing.catalog:
        click.echo("  unknown feature")
    if limitations:
        for key, value in limitations.model_dump(exclude_none=True).items():
            click.echo(f"  {key}: {value}")
    if not enabled:
        suggestion = licensing.get_upgrade_suggestions(feature_id)
        if suggestion:
            click.echo(f"  requires: {suggestion.required_tier.value}")
        sys.exit(1)


@cli.command()
@click.argument("route")
@tier_option
@json_option
@click.pass_context
def page(ctx: click.Context, route: str, tier: str | None, json_output: bool) -> None:
    """Check access to ROUTE (e.g. /purchases)."""
    licensing = _licensing(ctx, tier)
    result = licensing.validate_page_access(route)

    if json_output:
        _emit({
            "route": canonical_route(route),
            "features": list(features_for_route(route, licensing.catalog)),
            **result.model_dump(mode="json"),
        })
        return

    click.echo(_yes_no(result.allowed) + f"  {canonical_route(route)}")
    if not result.allowed:
        click.echo(f"  {result.message}")
        click.echo(f"  redirect: {result.redirect_to}")
        sys.exit(1)


@cli.command()
@click.argument("name")
@tier_option
@json_option
@click.pass_context
def component(ctx: click.Context, name: str, tier: str | None, json_output: bool) -> None:
    """Check whether component NAME may render."""
    licensing = _licensing(ctx, tier)
    enabled = licensing.can_render_component(name)

    if json_output:
        _emit({"component": name, "can_render": enabled})
        return

    click.echo(_yes_no(enabled, "RENDER", "HIDDEN") + f"  {name}")
    if not enabled:
        sys.exit(1)


@cli.command()
@click.argument("feature_id")
@click.option(
    "--usage", "usage_entries", multiple=True,
    help="Current usage as RESOURCE=N (repeatable), e.g. daily_sales=12",
)
@tier_option
@json_option
@click.pass_context
def limits(
    ctx: click.Context,
    feature_id: str,
    usage_entries: tuple[str, ...],
    tier: str | None,
    json_output: bool,
) -> None:
    """Check usage against the caps of FEATURE_ID."""
    usage = _parse_usage(usage_entries)
    licensing = _licensing(ctx, tier)
    result = asyncio.run(licensing.check_feature_limits(feature_id, usage))

    if json_output:
        _emit(result.model_dump(mode="json"))
        return

    if result.within_limits:
        click.echo(click.style("WITHIN LIMITS", fg="green", bold=True) + f"  {feature_id}")
        return
    click.echo(click.style("LIMIT REACHED", fg="red", bold=True) + f"  {feature_id}")
    click.echo(f"  {result.message}")
    sys.exit(1)


@cli.command()
@click.argument("feature_id")
@tier_option
@json_option
@click.pass_context
def upgrade(ctx: click.Context, feature_id: str, tier: str | None, json_output: bool) -> None:
    """Show the upgrade that unlocks FEATURE_ID."""
    licensing = _licensing(ctx, tier)
    suggestion = licensing.get_upgrade_suggestions(feature_id)

    if json_output:
        _emit(suggestion.model_dump(mode="json") if suggestion else None)
        return

    if suggestion is None:
        click.echo(f"No upgrade needed for {feature_id}.")
        return
    info = suggestion.tier_info
    click.echo(
        "Upgrade to "
        + click.style(info.name, fg=_TIER_COLORS[suggestion.required_tier], bold=True)
        + (f"  ({info.price})" if info.price else "")
    )
    for name in suggestion.benefits:
        click.echo(f"  + {name}")


# --- catalog commands ---


@cli.group()
def catalog() -> None:
    """Inspect plan catalogs."""


@catalog.command("validate")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def catalog_validate(path: str) -> None:
    """Validate a plan catalog YAML file."""
    try:
        cat = load_catalog(path)
    except CatalogError as e:
        click.echo(click.style("FAIL", fg="red") + f"  {e}")
        sys.exit(1)
    click.echo(
        click.style("OK", fg="green")
        + f"    {len(cat)} feature(s), {len(cat.page_features)} page(s), "
        f"{len(cat.component_features)} component(s)"
    )
    click.echo(f"  sha256: {catalog_digest(path)}")


@catalog.command("show")
@json_option
@click.pass_context
def catalog_show(ctx: click.Context, json_output: bool) -> None:
    """Print the active plan catalog."""
    cfg = _resolve_cfg(ctx.obj.get("config_file"))
    try:
        cat = build_catalog(cfg)
    except CatalogError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if json_output:
        _emit({
            "features": [f.model_dump(mode="json") for f in cat.features],
            "pages": {k: list(v) for k, v in cat.page_features.items()},
            "components": {k: list(v) for k, v in cat.component_features.items()},
        })
        return

    for t in LicenseTier:
        group = [f for f in cat.features if f.required_tier == t]
        click.echo(click.style(f"{t.value} ({len(group)})", fg=_TIER_COLORS[t], bold=True))
        for f in group:
            core = " core" if f.is_core else ""
            click.echo(f"  {f.id:<24} {f.category.value:<10}{core}")


# --- license commands ---


@cli.group()
def license() -> None:  # noqa: A001
    """Manage the MedixPOS license key."""


@license.command("validate")
@click.argument("license_key", required=False)
@click.option("--activation-id", default=None, help="Existing activation id")
@click.option("--force", is_flag=True, help="Ignore the cached validation")
@json_option
@click.pass_context
def license_validate(
    ctx: click.Context,
    license_key: str | None,
    activation_id: str | None,
    force: bool,
    json_output: bool,
) -> None:
    """Validate LICENSE_KEY, or the stored key when omitted."""
    svc = _license_service(ctx)
    result = svc.validate_license(license_key, activation_id, force=force)

    if json_output:
        _emit(result.model_dump(mode="json", exclude={"details"}))
    else:
        click.echo(
            _yes_no(result.valid, "VALID", result.status.value.upper())
            + f"  {result.message or ''}"
        )
        if result.expires_at:
            click.echo(f"  expires: {result.expires_at.isoformat()}")
        if result.limit_usage:
            click.echo(f"  usage:   {result.usage or 0}/{result.limit_usage}")
    if not result.valid:
        sys.exit(1)


@license.command("activate")
@click.argument("license_key")
@click.option("--label", default=None, help="Activation label (default: MedixPOS-<machine>)")
@json_option
@click.pass_context
def license_activate(
    ctx: click.Context, license_key: str, label: str | None, json_output: bool,
) -> None:
    """Activate LICENSE_KEY on this machine."""
    result = _license_service(ctx).activate_license(license_key, label=label)
    if json_output:
        _emit(result.model_dump(mode="json"))
    else:
        click.echo(_yes_no(result.success, "ACTIVATED", "FAILED") + f"  {result.message}")
    if not result.success:
        sys.exit(1)


@license.command("deactivate")
@json_option
@click.pass_context
def license_deactivate(ctx: click.Context, json_output: bool) -> None:
    """Release this machine's activation."""
    result = _license_service(ctx).deactivate_license()
    if json_output:
        _emit(result.model_dump(mode="json"))
    else:
        click.echo(_yes_no(result.success, "DEACTIVATED", "FAILED") + f"  {result.message}")
    if not result.success:
        sys.exit(1)


@license.command("info")
@json_option
@click.pass_context
def license_info(ctx: click.Context, json_output: bool) -> None:
    """Show the stored license state."""
    svc = _license_service(ctx)
    info = svc.get_license_info()

    if json_output:
        _emit({**info.model_dump(mode="json"), "needs_revalidation": svc.needs_revalidation()})
        return

    if not info.is_licensed:
        click.echo("No license installed (running as TRIAL).")
        return
    status = info.status.value if info.status else "unknown"
    click.echo(f"  status:         {status}")
    if info.expires_at:
        click.echo(f"  expires:        {info.expires_at.isoformat()}")
    if info.last_validated:
        click.echo(f"  last validated: {info.last_validated.isoformat()}")
    if info.limit_usage:
        click.echo(f"  usage:          {info.usage or 0}/{info.limit_usage}")
    if svc.needs_revalidation():
        click.echo(click.style("  revalidation due", fg="yellow"))


@license.command("clear")
@click.confirmation_option(prompt="Forget the stored license?")
@click.pass_context
def license_clear(ctx: click.Context) -> None:
    """Forget the stored license (does not release the activation)."""
    _license_service(ctx).clear_license()
    click.echo("License cleared.")


@license.command("machine-id")
@click.pass_context
def license_machine_id(ctx: click.Context) -> None:
    """Show the machine id for support."""
    click.echo(_license_service(ctx).machine_id_for_display())


# --- serve command ---


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", default=8430, type=int, help="Port number")
@click.option("--dev", is_flag=True, help="Enable CORS for frontend dev server")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int, dev: bool) -> None:
    """Run the licensing API server."""
    try:
        import uvicorn
    except ImportError:
        click.echo(
            "The API server requires extra dependencies. Install with:\n"
            "  pip install medixpos-licensing[api]",
            err=True,
        )
        sys.exit(1)

    from medixpos.api.app import create_app
    from medixpos.api.config import ApiConfig

    config = ApiConfig(
        host=host,
        port=port,
        config_file=ctx.obj.get("config_file"),
        dev_mode=dev,
    )
    app = create_app(config)

    click.echo(f"MedixPOS Licensing API: http://{host}:{port}")
    if dev:
        click.echo("  Dev mode: CORS enabled for http://localhost:5173")

    uvicorn.run(app, host=host, port=port, log_level="info")
