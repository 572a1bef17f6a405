"""s3migrator CLI tool."""

import asyncio
import importlib.util
import logging
import sys

import click

from s3migrator.core.client import S3ClientManager
from s3migrator.core.exceptions import S3MigratorError
from s3migrator.core.settings import MigratorSettings
from s3migrator.core.status import IMPORT_JOB_NAME, MIGRATION_KEY, MigrationStatus
from s3migrator.migrations.migrator import Migrator
from s3migrator.store.host import LoggingJobStatus
from s3migrator.store.service import RecordStore


def _load_migrator(app_file: str) -> Migrator | None:
    """Load the Migrator instance defined in a Python file."""
    spec = importlib.util.spec_from_file_location("migrator_app", app_file)
    if not spec or not spec.loader:
        return None

    module = importlib.util.module_from_spec(spec)
    sys.modules["migrator_app"] = module
    spec.loader.exec_module(module)

    for attr_name in dir(module):
        attr = getattr(module, attr_name)
        if isinstance(attr, Migrator):
            return attr
    return None


def _build_settings(bucket, endpoint, base_path, **overrides) -> MigratorSettings:
    values = {k: v for k, v in overrides.items() if v is not None}
    if bucket:
        values["aws_bucket_name"] = bucket
    if endpoint:
        values["aws_url"] = endpoint
    if base_path is not None:
        values["s3_base_path"] = base_path
    return MigratorSettings(**values)


def _configure_logging(settings: MigratorSettings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@click.group()
def cli():
    """s3migrator CLI - Migrate S3-stored records without a cutover."""
    pass


@cli.command("import")
@click.option("--app", "app_file", default="migrations.py", help="File defining a Migrator")
@click.option("--bucket", help="S3 bucket name (defaults to AWS_BUCKET_NAME)")
@click.option("--endpoint", help="S3 endpoint URL (for LocalStack)")
@click.option("--base-path", default=None, help="S3 base path for records")
@click.option("--batch-size", type=int, default=None, help="Records per batch")
@click.option("--max-duration", type=float, default=None, help="Time budget in seconds")
def import_job(app_file, bucket, endpoint, base_path, batch_size, max_duration):
    """Run one import pass over all types with a migrate function.

    Run it repeatedly (e.g. from a scheduler) until it reports that the
    initial import is complete.
    """
    settings = _build_settings(
        bucket,
        endpoint,
        base_path,
        batch_size=batch_size,
        max_duration_seconds=max_duration,
    )
    _configure_logging(settings)

    migrator = _load_migrator(app_file)
    if migrator is None:
        click.echo(f"❌ No Migrator found in {app_file}")
        sys.exit(1)

    # Settings from the command line win over what the app file configured.
    if batch_size is not None:
        migrator.batch_size = settings.batch_size
    if max_duration is not None:
        migrator.max_duration = settings.max_duration

    async def _run():
        manager = S3ClientManager(settings)
        async with manager.get_async_client() as s3_client:
            store = RecordStore(
                s3_client,
                settings.require_bucket(),
                base_path=settings.s3_base_path,
            )
            migrator.export_triggers(store.host, store)
            status = LoggingJobStatus()
            migrated = await store.host.run_job(IMPORT_JOB_NAME, status)
            return migrated, status.message

    try:
        migrated, message = asyncio.run(_run())
    except S3MigratorError as e:
        click.echo(f"❌ {e}")
        sys.exit(1)

    click.echo(f"✅ {message}")
    click.echo(f"   Migrated: {migrated} records")


@cli.command()
@click.option("--app", "app_file", default="migrations.py", help="File defining a Migrator")
@click.option("--bucket", help="S3 bucket name (defaults to AWS_BUCKET_NAME)")
@click.option("--endpoint", help="S3 endpoint URL (for LocalStack)")
@click.option("--base-path", default=None, help="S3 base path for records")
@click.option("--type", "type_names", multiple=True, help="Entity type (repeatable)")
def status(app_file, bucket, endpoint, base_path, type_names):
    """Show how many records of each type are in each migration status."""
    settings = _build_settings(bucket, endpoint, base_path)
    _configure_logging(settings)

    if not type_names:
        migrator = _load_migrator(app_file)
        if migrator is None:
            click.echo(f"❌ No Migrator found in {app_file}; pass --type instead")
            sys.exit(1)
        type_names = migrator.registry.types()

    async def _status():
        manager = S3ClientManager(settings)
        async with manager.get_async_client() as s3_client:
            store = RecordStore(
                s3_client,
                settings.require_bucket(),
                base_path=settings.s3_base_path,
            )
            counts = {}
            for name in type_names:
                untouched = await (
                    store.query(name)
                    .not_contained_in(MIGRATION_KEY, list(MigrationStatus))
                    .count()
                )
                by_status = {"untouched": untouched}
                for member in MigrationStatus:
                    by_status[member.name] = await (
                        store.query(name).equal_to(MIGRATION_KEY, int(member)).count()
                    )
                counts[name] = by_status
            return counts

    try:
        counts = asyncio.run(_status())
    except S3MigratorError as e:
        click.echo(f"❌ {e}")
        sys.exit(1)

    click.echo("\n📋 Migration Status:\n")
    for name, by_status in counts.items():
        click.echo(f"{name}")
        for label, count in by_status.items():
            click.echo(f"  {label}: {count}")


@cli.command()
@click.option("--app", "app_file", default="migrations.py", help="File defining a Migrator")
def handlers(app_file):
    """List the handlers registered in an app file."""
    migrator = _load_migrator(app_file)
    if migrator is None:
        click.echo(f"❌ No Migrator found in {app_file}")
        sys.exit(1)

    if not len(migrator.registry):
        click.echo("No handlers registered")
        return

    for name, handler_set in migrator.registry.items():
        kinds = ", ".join(kind.value for kind in handler_set.registered_kinds())
        click.echo(f"📋 {name}: {kinds}")


@cli.command()
def version():
    """Show s3migrator version."""
    from s3migrator import __version__

    click.echo(f"s3migrator version: {__version__}")


if __name__ == "__main__":
    cli()
