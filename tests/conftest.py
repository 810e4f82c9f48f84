import os
import tempfile
from os import environ

import pytest
from sqlalchemy import text

# allow for a mysql test db, otherwise use a scratch sqlite file
if environ.get('VARIATION_DB_TEST_DB_CONNECTION'):
    environ['VARIATION_DB_CONNECTION'] = environ['VARIATION_DB_TEST_DB_CONNECTION']
else:
    environ['VARIATION_DB_CONNECTION'] = 'sqlite:///' + os.path.join(tempfile.mkdtemp(), 'variation.db')

from variationdb.db import VariationDB
from variationdb.rationalise import MAPPING_TABLE, BACKUP_TABLES

db = VariationDB()

SCHEMA = [
    """CREATE TABLE IF NOT EXISTS phenotype (
        phenotype_id INTEGER NOT NULL PRIMARY KEY,
        stable_id VARCHAR(255),
        name VARCHAR(50),
        description VARCHAR(255)
    )""",
    """CREATE TABLE IF NOT EXISTS phenotype_feature (
        phenotype_feature_id INTEGER NOT NULL PRIMARY KEY,
        phenotype_id INTEGER,
        object_id VARCHAR(255),
        type VARCHAR(50)
    )""",
    """CREATE TABLE IF NOT EXISTS phenotype_ontology_accession (
        phenotype_id INTEGER NOT NULL,
        accession VARCHAR(255) NOT NULL,
        mapped_by_attrib VARCHAR(255),
        mapping_type VARCHAR(50),
        PRIMARY KEY (phenotype_id, accession)
    )""",
]


def before_each_test(engine):
    """
    recreate the phenotype tables empty and drop anything a previous run left behind
    """
    with engine.begin() as con:
        for table in [MAPPING_TABLE] + list(BACKUP_TABLES.values()):
            con.execute(text(f"DROP TABLE IF EXISTS {table}"))
        for ddl in SCHEMA:
            con.execute(text(ddl))
        con.execute(text("DELETE FROM phenotype_ontology_accession"))
        con.execute(text("DELETE FROM phenotype_feature"))
        con.execute(text("DELETE FROM phenotype"))


@pytest.fixture(autouse=True)
def engine():
    engine = db.get_engine()
    before_each_test(engine)
    yield engine
    engine.dispose()


def seed(engine, phenotypes, features=(), accessions=()):
    with engine.begin() as con:
        for phenotype_id, description in phenotypes:
            con.execute(text("INSERT INTO phenotype (phenotype_id, description) VALUES (:id, :description)"),
                        {'id': phenotype_id, 'description': description})
        for feature_id, phenotype_id, object_id in features:
            con.execute(text("INSERT INTO phenotype_feature (phenotype_feature_id, phenotype_id, object_id, type) "
                             "VALUES (:id, :phenotype_id, :object_id, 'Variation')"),
                        {'id': feature_id, 'phenotype_id': phenotype_id, 'object_id': object_id})
        for phenotype_id, accession in accessions:
            con.execute(text("INSERT INTO phenotype_ontology_accession (phenotype_id, accession, mapping_type) "
                             "VALUES (:phenotype_id, :accession, 'is')"),
                        {'phenotype_id': phenotype_id, 'accession': accession})


@pytest.fixture
def seeder():
    return seed
