import logging

import click
from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

from variationdb.db import VariationDB
from variationdb.rationalise import rationalise_phenotypes, MAPPING_TABLE

logger = logging.getLogger('variationdb')
logger.setLevel(logging.INFO)

ch = logging.StreamHandler()
formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
ch.setFormatter(formatter)

logger.addHandler(ch)


@click.group()
@click.option('--env-file', '-e', type=str)
@click.pass_context
def cli(ctx, env_file):
    if env_file:
        load_dotenv(env_file)


@click.command(name='rationalise-phenotypes')
@click.option('--host', '-h', type=str, required=True, envvar='VARIATION_DB_HOST')
@click.option('--user', '-u', type=str, required=True, envvar='VARIATION_DB_USER')
@click.option('--port', '-P', type=int, default=3306, envvar='VARIATION_DB_PORT')
@click.option('--password', '-p', type=str, required=True, envvar='VARIATION_DB_PASSWORD')
@click.option('--db', '-d', type=str, required=True, envvar='VARIATION_DB_NAME')
@click.option('--dry-run', is_flag=True, default=False, help='Report the duplicates without changing the database')
def cli_rationalise_phenotypes(host, user, port, password, db, dry_run):
    """
    Look for semantic duplicates in the phenotype table using the description column. Phenotypes
    matching in all alphanumeric characters (case, spaces and punctuation not considered) are merged
    into one entry.

    Removed phenotypes and changed phenotype_feature and phenotype_ontology_accession entries are
    backed up to MTMP_tmp_*_bak tables. The old to new id mapping is kept in MTMP_tmp_phenotype_map;
    a run without duplicates only removes that table when it created it.
    """
    engine = VariationDB(host=host, user=user, password=password, db=db, port=port).get_engine()
    try:
        summary = rationalise_phenotypes(engine, dry_run=dry_run)
    except SQLAlchemyError as e:
        raise click.ClickException(str(e))
    finally:
        engine.dispose()

    if summary.exact_duplicates:
        click.echo(f"\n{len(summary.exact_duplicates)} descriptions are shared verbatim by several phenotypes, "
                   f"only one id of each was considered")
    if summary.dry_run:
        click.echo(f"\nFound {summary.duplicates} semantic duplicate entries in phenotype")
        click.echo(f"Would update {summary.phenotype_features_updated} phenotype_feature entries")
    elif summary.duplicates:
        click.echo(f"\nFound {summary.duplicates} semantic duplicate entries in phenotype")
        click.echo(f"Backed up {summary.phenotype_features_backed_up} phenotype_feature, "
                   f"{summary.phenotypes_backed_up} phenotype and "
                   f"{summary.ontology_accessions_backed_up} phenotype_ontology_accession entries")
        click.echo(f"Updated {summary.phenotype_features_updated} phenotype_feature entries")
        click.echo(f"Updated {summary.ontology_accessions_updated} phenotype_ontology_accession entries, "
                   f"removed {summary.ontology_accessions_deleted}")
        click.echo(f"Removed {summary.phenotypes_deleted} phenotype entries")
    elif summary.mapping_table_dropped:
        click.echo(f"\nFound no duplicates, removed {MAPPING_TABLE} table")
    else:
        click.echo(f"\nFound no duplicates, kept {MAPPING_TABLE} from an earlier run")
    click.echo("\nAll done!")


cli.add_command(cli_rationalise_phenotypes)


def main():
    cli()


if __name__ == '__main__':
    main()
