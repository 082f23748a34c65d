"""
tfadopt CLI - Adopt Existing Cloud Resources into Terraform

Main entry point for the command-line interface.
"""

import sys
from typing import List, Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .core.aws_client import AWSClient, AWSProviderConfig
from .core.exceptions import AWSClientError, TfAdoptError
from .core.importer import DEFAULT_PATH_PATTERN, ImportOptions, ImportResult, Importer
from .core.logging import setup_logging
from .providers.aws import AWSProvider


console = Console()


def split_list(ctx, param, value: Optional[str]) -> List[str]:
    """Parse a comma-separated option into a list."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def aws_import_options(func):
    """Attach the options shared by ``import aws`` and ``plan aws``."""
    options = [
        click.option(
            "--resources",
            "-r",
            default="ec2,s3",
            callback=split_list,
            help="Comma-separated services to import, or '*' for all (default: ec2,s3)",
        ),
        click.option(
            "--excludes",
            "-x",
            default=None,
            callback=split_list,
            help="Comma-separated services to skip",
        ),
        click.option(
            "--output",
            "-o",
            "path_output",
            default="generated",
            help="Output root directory (default: generated)",
        ),
        click.option(
            "--path-pattern",
            "-p",
            default=DEFAULT_PATH_PATTERN,
            help="Directory template with {output}, {provider} and {service}",
        ),
        click.option(
            "--region",
            default=None,
            help="AWS region, or 'aws-global' for global services (default: us-east-1)",
        ),
        click.option(
            "--profile",
            default=None,
            help="AWS profile name from ~/.aws/credentials",
        ),
        click.option(
            "--filters",
            "-f",
            default=None,
            callback=split_list,
            help="Comma-separated filter expressions (e.g. route53=Z123:Z456)",
        ),
        click.option(
            "--compact",
            is_flag=True,
            help="Write one resources file per service instead of one per type",
        ),
        click.option(
            "--json",
            "json_output",
            is_flag=True,
            help="Write configuration as JSON instead of HCL",
        ),
        click.option(
            "--no-sort",
            is_flag=True,
            help="Keep discovery order instead of sorting by type and name",
        ),
        click.option(
            "--verbose",
            "-v",
            is_flag=True,
            help="Show service details and stop at the first failure",
        ),
        click.option(
            "--log-file",
            default=None,
            help="Also write logs to this file",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_options(
    resources: List[str],
    excludes: List[str],
    path_output: str,
    path_pattern: str,
    filters: List[str],
    compact: bool,
    json_output: bool,
    no_sort: bool,
    verbose: bool,
) -> ImportOptions:
    return ImportOptions(
        resources=resources,
        excludes=excludes,
        path_output=path_output,
        path_pattern=path_pattern,
        filters=filters,
        compact=compact,
        output="json" if json_output else "hcl",
        no_sort=no_sort,
        verbose=verbose,
    )


def _build_provider(region: Optional[str], profile: Optional[str]) -> AWSProvider:
    return AWSProvider(
        AWSProviderConfig(region=region or "us-east-1", profile=profile)
    )


@click.group()
@click.version_option(version="0.1.0", prog_name="tfadopt")
def cli():
    """
    tfadopt: Adopt Existing Cloud Resources into Terraform

    Discovers live resources and writes Terraform configuration together
    with a matching terraform.tfstate, one directory per service.
    """
    pass


@cli.group("import")
def import_group():
    """Import resources from a provider."""
    pass


@import_group.command("aws")
@aws_import_options
def import_aws(
    resources: List[str],
    excludes: List[str],
    path_output: str,
    path_pattern: str,
    region: Optional[str],
    profile: Optional[str],
    filters: List[str],
    compact: bool,
    json_output: bool,
    no_sort: bool,
    verbose: bool,
    log_file: Optional[str],
):
    """
    Import AWS resources into Terraform configuration and state.

    Services are processed in the order given. References to another
    service are only written when both share an output directory (a
    --path-pattern without {service}); list referenced services first.
    Otherwise identifiers of other services stay literal.

    Examples:

        # Import EC2 and S3 (default)
        tfadopt import aws

        # Import Route53 and IAM as global services
        tfadopt import aws -r route53,iam --region aws-global

        # Only two hosted zones, single file per service
        tfadopt import aws -r route53 -f route53_zone=Z123:Z456 --compact

        # SQS and SNS in one directory, subscriptions referencing queues
        tfadopt import aws -r sqs,sns -p "{output}/{provider}"

        # Only t3.micro instances
        tfadopt import aws -r ec2 -f "Type=instance;Name=instance_type;Value=t3.micro"

        # JSON output into a custom layout
        tfadopt import aws -r sqs,sns --json -p "{output}/{service}"
    """
    setup_logging(level="DEBUG" if verbose else "INFO", log_file=log_file)
    options = _build_options(
        resources, excludes, path_output, path_pattern, filters,
        compact, json_output, no_sort, verbose,
    )

    try:
        importer = Importer(_build_provider(region, profile))

        console.print(
            f"\n[bold]Importing from AWS[/bold] "
            f"[dim]({region or 'us-east-1'}, output: {path_output})[/dim]\n"
        )

        def progress_callback(message: str, current: int, total: int):
            console.print(f"  [dim][{current}/{total}][/dim] {message}")

        result = importer.import_resources(options, progress_callback=progress_callback)
        _print_import_summary(result)

        if result.services and len(result.errors) == len(result.services):
            sys.exit(1)

    except TfAdoptError as e:
        console.print(f"\n[red bold]Error:[/red bold] {str(e)}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Import cancelled by user.[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"\n[red bold]Error:[/red bold] {str(e)}")
        sys.exit(1)


def _print_import_summary(result: ImportResult) -> None:
    """Print a per-service summary table of an import run."""
    table = Table(show_lines=False)
    table.add_column("Service", style="cyan")
    table.add_column("Resources", justify="right")
    table.add_column("Files", justify="right", style="dim")
    table.add_column("Status")

    for service in result.services:
        if service in result.errors:
            table.add_row(service, "-", "-", f"[red]Failed: {result.errors[service]}[/red]")
        else:
            table.add_row(
                service,
                str(len(result.resources_by_service.get(service, []))),
                str(len(result.output_paths.get(service, []))),
                "[green]OK[/green]",
            )

    console.print()
    console.print(table)

    if result.has_errors:
        console.print(
            Panel(
                f"[yellow]{len(result.errors)} service(s) failed:[/yellow] "
                f"{', '.join(result.failed_services)}\n"
                "Output of the other services was written.",
                border_style="yellow",
            )
        )

    console.print(
        f"\n[green bold]Imported {result.total_resources} resources[/green bold] "
        f"[dim]in {result.duration:.1f}s[/dim]\n"
    )


@cli.group("plan")
def plan_group():
    """Write an import plan without discovering anything."""
    pass


@plan_group.command("aws")
@aws_import_options
def plan_aws(
    resources: List[str],
    excludes: List[str],
    path_output: str,
    path_pattern: str,
    region: Optional[str],
    profile: Optional[str],
    filters: List[str],
    compact: bool,
    json_output: bool,
    no_sort: bool,
    verbose: bool,
    log_file: Optional[str],
):
    """Write <output>/aws/plan.json describing an AWS import."""
    setup_logging(level="DEBUG" if verbose else "INFO", log_file=log_file)
    options = _build_options(
        resources, excludes, path_output, path_pattern, filters,
        compact, json_output, no_sort, verbose,
    )

    try:
        plan_path = Importer(_build_provider(region, profile)).plan(options)
        console.print(f"\n[green]Plan saved to:[/green] {plan_path}\n")
    except TfAdoptError as e:
        console.print(f"\n[red bold]Error:[/red bold] {str(e)}")
        sys.exit(1)


@cli.group("list")
def list_group():
    """List the services a provider supports."""
    pass


@list_group.command("aws")
def list_aws():
    """List supported AWS services."""
    services = Importer(AWSProvider()).get_supported_services()

    console.print(f"\n[bold]Supported AWS services ({len(services)} total):[/bold]\n")
    for service in services:
        console.print(f"  • {service}")
    console.print()


@cli.group("connections")
def connections_group():
    """Show how services reference each other."""
    pass


@connections_group.command("aws")
def connections_aws():
    """Show the AWS resource connections table."""
    connections = Importer(AWSProvider()).get_resource_connections()

    table = Table(show_lines=False)
    table.add_column("Resource", style="cyan")
    table.add_column("Refers to", style="yellow")
    table.add_column("Field -> exported attribute", style="white")

    for source, targets in connections.items():
        for target, fields in targets.items():
            pairs = [
                f"{fields[i]} -> {fields[i + 1]}" for i in range(0, len(fields) - 1, 2)
            ]
            table.add_row(source, target, ", ".join(pairs))

    console.print(table)


@cli.command("validate")
@click.option(
    "--profile",
    "-p",
    default=None,
    help="AWS profile name from ~/.aws/credentials",
)
@click.option(
    "--region",
    "-r",
    default="us-east-1",
    help="AWS region to use for validation",
)
def validate_credentials(profile: Optional[str], region: str):
    """Validate AWS credentials and show account info."""
    try:
        client = AWSClient(region=region, profile=profile)
        client.validate_credentials()
        account_id = client.get_account_id()

        console.print("\n[green bold]AWS credentials are valid![/green bold]")
        console.print(f"\n  Account ID: {account_id}")
        console.print(f"  Region: {region}")
        if profile:
            console.print(f"  Profile: {profile}")
        console.print()

    except AWSClientError as e:
        console.print(f"\n[red bold]Validation Failed:[/red bold] {str(e)}")
        sys.exit(1)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
