"""Show the dynamic options and features the provider advertises."""

import click

from feedget import PackageProvider, setup_logging
from feedget.commands.utils import make_request
from feedget.provider import DYNAMIC_OPTIONS


@click.command()
@click.argument("category", type=click.Choice(sorted(DYNAMIC_OPTIONS)), required=False)
@click.pass_context
def options(ctx, category: str | None):
    """List dynamic options for CATEGORY, or provider features without one."""
    setup_logging(ctx.obj.get("debug", False))
    provider = PackageProvider()
    if category is None:
        for feature, values in provider.get_features().items():
            click.echo(f"{feature}: {', '.join(values)}")
        return

    request = make_request()
    provider.get_dynamic_options(request, category)
    for option in request.dynamic_options:
        line = f"{option.name} ({option.expected_type})"
        if option.is_required:
            line += " required"
        if option.permitted_values:
            line += f" [{' | '.join(option.permitted_values)}]"
        click.echo(line)
