"""Click CLI interface for the schema packager."""

import logging
import sys
from typing import Optional

import click

from . import SUPPORTED_DIALECTS, __version__
from .assembler import PackageAssembler
from .backends import connection_factory, get_backend
from .base.builder import PackageMetadata
from .base.models import ObjectKind
from .builders import DacpacBuilder
from .config import PackagerConfig, parse_dialect
from .exceptions import (
    BackendNotAvailableError,
    ConfigurationError,
    ConnectionError,
    ObjectListError,
    ObjectListNotFoundError,
    SchemaPackagerError,
)
from .parser import parse_line
from .pipeline import PipelineDriver
from .registry import ConnectionRegistry

OBJECT_LIST_HELP = """\
ObjectListFile Format:
DB:<SQLServerName>.<DatabaseName>     (Initialise connection to server and database)
<objecttype>:<schema>.<name1>         (for objects with schemas)
<objecttype>:<name2>                  (for objects without schemas)
ScriptFile:<FilePath>                 (File containing SQL script/s)

Notes:
Lines can be commented with -- or // at the start of a line.
DB: is required to initialise a connection to database in order to retrieve subsequent SQL Objects.
Objects can be retrieved from multiple servers and/or databases by adding another DB: connection line.
The verbose option will print retrieved scripts to the console.
SQLVersion can be one of the following: SQL2012, SQL2014, SQL2016, SQL2017.  Default is SQL2016."""


def setup_logging(verbosity: int) -> None:
    """Configure logging based on verbosity level."""
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_connection_options(
    ctx: click.Context, param: click.Parameter, values: tuple[str, ...]
) -> dict[str, str]:
    """Turn repeated KEY=VALUE options into extra connection string settings."""
    options = {}
    for value in values:
        key, separator, setting = value.partition("=")
        if not separator or not key.strip():
            raise click.BadParameter(f"expected KEY=VALUE, got '{value}'")
        options[key.strip()] = setting.strip()
    return options


def supported_object_types() -> list[str]:
    return [str(kind) for kind in ObjectKind.database_objects()]


def print_usage(ctx: click.Context) -> None:
    click.echo(ctx.get_help())
    click.echo()
    click.echo(OBJECT_LIST_HELP)
    click.echo("\nSupported SQL Object Types:")
    for object_type in supported_object_types():
        click.echo(f" - {object_type}")


@click.group()
@click.version_option(version=__version__)
def cli():
    """Schema Packager - Extract SQL Server objects and script files into a dacpac."""
    pass


@cli.command()
@click.option("-o", "--dacpac", "dacpac", type=click.Path(dir_okay=False),
              help="Package file to write")
@click.option("-l", "--objectlist", "objectlist", type=click.Path(dir_okay=False),
              help="Object list file naming the objects to extract")
@click.option("-s", "--sqlversion", "sqlversion", metavar="|".join(SUPPORTED_DIALECTS),
              help="Target SQL Server version (default SQL2016)")
@click.option("-u", "--username", envvar="DB_USER", help="Database username (default: Windows authentication)")
@click.option("-p", "--password", envvar="DB_PASSWORD", help="Database password")
@click.option("--driver", envvar="DB_DRIVER", help="ODBC driver name")
@click.option("--timeout", type=int, default=30, show_default=True, help="Login timeout in seconds")
@click.option("-x", "--connection-option", "connection_options", multiple=True, metavar="KEY=VALUE",
              callback=parse_connection_options, help="Extra ODBC connection string setting (repeatable)")
@click.option("-v", "--verbose", count=True,
              help="Print extracted scripts; repeat for more logging (-v info, -vv debug)")
@click.pass_context
def build(
    ctx: click.Context,
    dacpac: Optional[str],
    objectlist: Optional[str],
    sqlversion: Optional[str],
    username: Optional[str],
    password: Optional[str],
    driver: Optional[str],
    timeout: int,
    connection_options: dict[str, str],
    verbose: int,
) -> None:
    """Extract the objects in an object list and build a schema package."""
    if not dacpac or not objectlist:
        print_usage(ctx)
        return

    setup_logging(verbose)
    logger = logging.getLogger(__name__)

    try:
        config = PackagerConfig(
            output_path=dacpac,
            object_list_path=objectlist,
            target_dialect=parse_dialect(sqlversion),
            username=username,
            password=password,
            driver=driver,
            connection_timeout=timeout,
            echo_scripts=verbose > 0,
            extra_connection_options=connection_options,
        )
        config.validate()

        registry = ConnectionRegistry(connection_factory(config))
        pipeline = PipelineDriver(registry, echo_scripts=config.echo_scripts)
        results = pipeline.run_file(config.object_list_path)

        for line in results.summary_lines():
            click.echo(line)

        assembler = PackageAssembler(DacpacBuilder(config.target_dialect))
        outcome = assembler.assemble(
            results,
            config.output_path,
            PackageMetadata(
                name=config.package_name,
                description=config.package_description,
                version=config.package_version,
            ),
        )

        click.echo("\nProcess Complete.")
        if not outcome.success:
            sys.exit(1)

    except ConfigurationError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)
    except ObjectListNotFoundError as e:
        click.echo(f"**** File not found error: {e}", err=True)
        sys.exit(1)
    except ObjectListError as e:
        click.echo(f"**** Object list error: {e}", err=True)
        sys.exit(1)
    except SchemaPackagerError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        logger.exception("Unexpected error")
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


@cli.command("object-types")
def object_types() -> None:
    """List supported object types and the object list format."""
    click.echo(OBJECT_LIST_HELP)
    click.echo("\nSupported SQL Object Types:")
    for object_type in supported_object_types():
        click.echo(f" - {object_type}")


@cli.command()
def drivers() -> None:
    """List available SQL Server ODBC drivers."""
    click.echo("MS SQL Server ODBC Drivers:")
    try:
        import pyodbc
        all_drivers = pyodbc.drivers()
        sql_drivers = [d for d in all_drivers if "SQL" in d.upper()]
        if sql_drivers:
            for driver in sql_drivers:
                click.echo(f"  - {driver}")
        else:
            click.echo("  None found")
    except ImportError:
        click.echo("  pyodbc not installed")


@cli.command("test-connection")
@click.argument("target")
@click.option("-u", "--username", envvar="DB_USER", help="Database username")
@click.option("-p", "--password", envvar="DB_PASSWORD", help="Database password")
@click.option("--driver", envvar="DB_DRIVER", help="ODBC driver name")
@click.option("--timeout", type=int, default=30, show_default=True, help="Login timeout in seconds")
@click.option("-x", "--connection-option", "connection_options", multiple=True, metavar="KEY=VALUE",
              callback=parse_connection_options, help="Extra ODBC connection string setting (repeatable)")
def test_connection(
    target: str,
    username: Optional[str],
    password: Optional[str],
    driver: Optional[str],
    timeout: int,
    connection_options: dict[str, str],
) -> None:
    """Test a connection given as SERVER.DATABASE (the part after db:)."""
    reference = parse_line(f"db:{target}")
    try:
        config = PackagerConfig(
            username=username,
            password=password,
            driver=driver,
            connection_timeout=timeout,
            extra_connection_options=connection_options,
        )
        ConnectionClass = get_backend(config.db_type)

        click.echo(f"Connecting to {reference.server_name}.{reference.database_name}...")
        with ConnectionClass(config, reference.server_name, reference.database_name) as conn:
            version = conn.get_version()
            click.echo("Connection successful!")
            click.echo(f"\nServer version:\n{version}")

    except BackendNotAvailableError as e:
        click.echo(f"Backend not available: {e}", err=True)
        sys.exit(1)
    except ConfigurationError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)
    except ConnectionError as e:
        click.echo(f"Connection failed: {e}", err=True)
        sys.exit(1)
    except SchemaPackagerError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()
