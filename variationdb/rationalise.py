"""
Merge semantically duplicated rows in the phenotype table.

Two descriptions are duplicates when they agree on every letter and digit once case
is ignored ("Type 2 Diabetes" and "type-2 diabetes"). One row per group survives; the
others are repointed in phenotype_feature and phenotype_ontology_accession and then
deleted. Every touched row is copied into a backup table first.
"""
import logging
import re
from typing import Dict, Iterable, List, Tuple

import sqlalchemy as sa
from sqlalchemy import text
from sqlalchemy.dialects import mysql

from variationdb import query
from variationdb.model import ExactDuplicate, Phenotype, PhenotypeMapping, RationaliseSummary

logger = logging.getLogger(__name__)

MAPPING_TABLE = 'MTMP_tmp_phenotype_map'
PHENOTYPE_FEATURE_BACKUP_TABLE = 'MTMP_tmp_phenotype_feature_bak'
PHENOTYPE_BACKUP_TABLE = 'MTMP_tmp_phenotype_bak'
ONTOLOGY_ACCESSION_BACKUP_TABLE = 'MTMP_tmp_phenotype_ontology_accession_bak'

BACKUP_TABLES = {
    'phenotype_feature': PHENOTYPE_FEATURE_BACKUP_TABLE,
    'phenotype': PHENOTYPE_BACKUP_TABLE,
    'phenotype_ontology_accession': ONTOLOGY_ACCESSION_BACKUP_TABLE,
}

NON_ALPHANUMERIC = re.compile(r'[\W_]+')


def normalise_description(description: str) -> str:
    return NON_ALPHANUMERIC.sub('', description.lower())


def count_upper(description: str) -> int:
    return sum(1 for c in description if c.isupper())


def canonical_sort_key(description: str) -> Tuple[int, int]:
    return count_upper(description), len(description)


def index_descriptions(phenotypes: Iterable[Phenotype]) -> Tuple[Dict[str, int], List[ExactDuplicate]]:
    """
    Map each description string to a phenotype id. When several rows carry the very same
    string the last one read wins; those strings are reported back as exact duplicates.
    """
    ids_by_desc = {}
    for phenotype in phenotypes:
        if phenotype.description is None:
            continue
        ids_by_desc.setdefault(phenotype.description, []).append(phenotype.phenotype_id)

    id_by_desc = {desc: ids[-1] for desc, ids in ids_by_desc.items()}
    exact_duplicates = []
    for desc, ids in ids_by_desc.items():
        if len(ids) > 1:
            logger.warning(f"Description '{desc}' is shared by phenotypes {ids}, only {ids[-1]} will be considered")
            exact_duplicates.append(ExactDuplicate(description=desc, phenotype_ids=ids, kept_phenotype_id=ids[-1]))
    return id_by_desc, exact_duplicates


def group_descriptions(descriptions: Iterable[str]) -> Dict[str, List[str]]:
    groups = {}
    for desc in descriptions:
        groups.setdefault(normalise_description(desc), []).append(desc)
    return groups


def select_canonical(descriptions: List[str]) -> Tuple[str, List[str]]:
    # sorted() is stable, equal keys keep their incoming order
    ordered = sorted(descriptions, key=canonical_sort_key)
    return ordered[0], ordered[1:]


def find_mappings(phenotypes: Iterable[Phenotype]) -> Tuple[List[PhenotypeMapping], List[ExactDuplicate]]:
    id_by_desc, exact_duplicates = index_descriptions(phenotypes)

    logger.info("Finding semantic matches")
    mappings = []
    for descriptions in group_descriptions(id_by_desc.keys()).values():
        if len(descriptions) < 2:
            continue
        canonical, superseded = select_canonical(descriptions)
        new_id = id_by_desc[canonical]
        for desc in superseded:
            logger.debug(f"'{desc}' ({id_by_desc[desc]}) will be merged into '{canonical}' ({new_id})")
            mappings.append(PhenotypeMapping(old_phenotype_id=id_by_desc[desc], new_phenotype_id=new_id))
    return mappings, exact_duplicates


def _mapping_table(metadata: sa.MetaData) -> sa.Table:
    id_type = sa.Integer().with_variant(mysql.INTEGER(unsigned=True), 'mysql')
    return sa.Table(
        MAPPING_TABLE, metadata,
        sa.Column('old_phenotype_id', id_type, nullable=False),
        sa.Column('new_phenotype_id', id_type, nullable=False),
        sa.Index(f'{MAPPING_TABLE}_old_phenotype_id', 'old_phenotype_id'),
        sa.Index(f'{MAPPING_TABLE}_new_phenotype_id', 'new_phenotype_id'),
    )


def create_mapping_table(engine) -> bool:
    """
    Create the mapping table unless an earlier run left one behind. Returns True when it was created here.
    """
    if sa.inspect(engine).has_table(MAPPING_TABLE):
        return False
    metadata = sa.MetaData()
    _mapping_table(metadata)
    metadata.create_all(engine, checkfirst=True)
    return True


def drop_mapping_table(engine):
    metadata = sa.MetaData()
    _mapping_table(metadata).drop(engine, checkfirst=True)


def _copy_table_structure(conn, source: str, backup: str):
    metadata = sa.MetaData()
    source_table = sa.Table(source, metadata, autoload_with=conn)
    columns = [sa.Column(c.name, c.type, primary_key=c.primary_key, nullable=c.nullable, autoincrement=False)
               for c in source_table.columns]
    sa.Table(backup, metadata, *columns).create(conn, checkfirst=True)


def create_backup_tables(engine):
    with engine.begin() as conn:
        for source, backup in BACKUP_TABLES.items():
            if conn.dialect.name == 'mysql':
                conn.execute(text(f"CREATE TABLE IF NOT EXISTS `{backup}` LIKE `{source}`"))
            else:
                _copy_table_structure(conn, source, backup)


def _ignore_conflicts(stmt):
    return stmt.prefix_with('IGNORE', dialect='mysql').prefix_with('OR IGNORE', dialect='sqlite')


def _reflect(conn, metadata: sa.MetaData, name: str) -> sa.Table:
    if name in metadata.tables:
        return metadata.tables[name]
    return sa.Table(name, metadata, autoload_with=conn)


def backup_rows(conn, metadata, source: str, old_ids) -> int:
    source_table = _reflect(conn, metadata, source)
    backup_table = _reflect(conn, metadata, BACKUP_TABLES[source])
    stmt = backup_table.insert().from_select(
        [c.name for c in source_table.columns],
        sa.select(source_table).where(source_table.c.phenotype_id.in_(old_ids))
    )
    return conn.execute(_ignore_conflicts(stmt)).rowcount


def _repoint(table: sa.Table, mappings: List[PhenotypeMapping]):
    new_ids = {m.old_phenotype_id: m.new_phenotype_id for m in mappings}
    return sa.update(table) \
        .values(phenotype_id=sa.case(new_ids, value=table.c.phenotype_id)) \
        .where(table.c.phenotype_id.in_(list(new_ids)))


def apply_mappings(engine, mappings: List[PhenotypeMapping]) -> RationaliseSummary:
    """
    Store the mappings as an audit trail and rewrite the phenotype tables from them. Only the
    given mappings drive the rewrite, rows kept from earlier runs are never consulted. The
    mapping and backup tables must already exist. All data changes run in one transaction,
    table creation happens beforehand since MySQL commits DDL implicitly.
    """
    summary = RationaliseSummary(duplicates=len(mappings))
    with engine.begin() as conn:
        metadata = sa.MetaData()
        mapping = sa.Table(MAPPING_TABLE, metadata, autoload_with=conn)
        conn.execute(mapping.insert(), [m.model_dump() for m in mappings])
        old_ids = [m.old_phenotype_id for m in mappings]

        logger.info(f"Backing up phenotype_feature entries to {PHENOTYPE_FEATURE_BACKUP_TABLE}")
        summary.phenotype_features_backed_up = backup_rows(conn, metadata, 'phenotype_feature', old_ids)
        logger.info(f"Backed up {summary.phenotype_features_backed_up} entries")

        logger.info(f"Backing up phenotype entries to {PHENOTYPE_BACKUP_TABLE}")
        summary.phenotypes_backed_up = backup_rows(conn, metadata, 'phenotype', old_ids)
        logger.info(f"Backed up {summary.phenotypes_backed_up} entries")

        logger.info(f"Backing up phenotype_ontology_accession entries to {ONTOLOGY_ACCESSION_BACKUP_TABLE}")
        summary.ontology_accessions_backed_up = backup_rows(conn, metadata, 'phenotype_ontology_accession', old_ids)
        logger.info(f"Backed up {summary.ontology_accessions_backed_up} phenotype_ontology_accession entries")

        phenotype_feature = metadata.tables['phenotype_feature']
        ontology_accession = metadata.tables['phenotype_ontology_accession']
        phenotype = metadata.tables['phenotype']

        logger.info("Updating entries in phenotype_feature")
        summary.phenotype_features_updated = conn.execute(_repoint(phenotype_feature, mappings)).rowcount
        logger.info(f"Updated {summary.phenotype_features_updated} phenotype_feature entries")

        # a canonical phenotype may already carry the same accession, those rows are skipped and deleted below
        logger.info("Updating entries in phenotype_ontology_accession")
        summary.ontology_accessions_updated = conn.execute(
            _ignore_conflicts(_repoint(ontology_accession, mappings))).rowcount
        logger.info(f"Updated {summary.ontology_accessions_updated} phenotype_ontology_accession entries")

        logger.info("Removing entries from phenotype_ontology_accession")
        summary.ontology_accessions_deleted = conn.execute(
            sa.delete(ontology_accession).where(ontology_accession.c.phenotype_id.in_(old_ids))).rowcount
        logger.info(f"Removed {summary.ontology_accessions_deleted} phenotype_ontology_accession entries")

        logger.info("Removing entries from phenotype")
        summary.phenotypes_deleted = conn.execute(
            sa.delete(phenotype).where(phenotype.c.phenotype_id.in_(old_ids))).rowcount
        logger.info(f"Removed {summary.phenotypes_deleted} entries")
    return summary


def rationalise_phenotypes(engine, dry_run: bool = False) -> RationaliseSummary:
    logger.info("Getting phenotype descriptions")
    mappings, exact_duplicates = find_mappings(query.get_phenotypes(engine))

    if dry_run:
        old_ids = [m.old_phenotype_id for m in mappings]
        logger.info(f"Dry run, found {len(mappings)} semantic duplicate entries in phenotype")
        return RationaliseSummary(dry_run=True, duplicates=len(mappings),
                                  phenotype_features_updated=query.count_phenotype_features(engine, old_ids),
                                  exact_duplicates=exact_duplicates)

    created = create_mapping_table(engine)
    if not mappings:
        if created:
            logger.info(f"Found no duplicates, removing {MAPPING_TABLE} table")
            drop_mapping_table(engine)
            return RationaliseSummary(mapping_table_dropped=True, exact_duplicates=exact_duplicates)
        else:
            logger.info(f"Found no duplicates, keeping {MAPPING_TABLE} from an earlier run")
        return RationaliseSummary(exact_duplicates=exact_duplicates)

    logger.info(f"Found {len(mappings)} semantic duplicate entries in phenotype")
    create_backup_tables(engine)
    summary = apply_mappings(engine, mappings)
    summary.exact_duplicates = exact_duplicates
    return summary
