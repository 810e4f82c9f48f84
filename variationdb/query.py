from typing import List

from sqlalchemy import text, bindparam

from variationdb.model import Phenotype, PhenotypeFeature, PhenotypeOntologyAccession


def get_phenotypes(engine) -> List[Phenotype]:
    with engine.connect() as conn:
        results = conn.execute(text("SELECT phenotype_id, description FROM phenotype ORDER BY phenotype_id")).fetchall()
    return [Phenotype(**row._asdict()) for row in results]


def get_phenotype(engine, phenotype_id: int) -> Phenotype:
    with engine.connect() as conn:
        result = conn.execute(
            text("""
            SELECT phenotype_id, description FROM phenotype WHERE phenotype_id = :phenotype_id
            """), {'phenotype_id': phenotype_id}
        ).first()

    if result is None:
        raise ValueError(f"No phenotype for id {phenotype_id}")
    else:
        return Phenotype(**result._asdict())


def get_phenotype_features(engine, phenotype_id: int) -> List[PhenotypeFeature]:
    with engine.connect() as conn:
        results = conn.execute(text("""
            SELECT phenotype_feature_id, phenotype_id, object_id, type
            FROM phenotype_feature WHERE phenotype_id = :phenotype_id ORDER BY phenotype_feature_id
            """), {'phenotype_id': phenotype_id}).fetchall()
    return [PhenotypeFeature(**row._asdict()) for row in results]


def get_ontology_accessions(engine, phenotype_id: int) -> List[PhenotypeOntologyAccession]:
    with engine.connect() as conn:
        results = conn.execute(text("""
            SELECT phenotype_id, accession, mapped_by_attrib, mapping_type
            FROM phenotype_ontology_accession WHERE phenotype_id = :phenotype_id ORDER BY accession
            """), {'phenotype_id': phenotype_id}).fetchall()
    return [PhenotypeOntologyAccession(**row._asdict()) for row in results]


def count_phenotype_features(engine, phenotype_ids: List[int]) -> int:
    if not phenotype_ids:
        return 0
    stmt = text("SELECT COUNT(*) FROM phenotype_feature WHERE phenotype_id IN :phenotype_ids") \
        .bindparams(bindparam('phenotype_ids', expanding=True))
    with engine.connect() as conn:
        return conn.execute(stmt, {'phenotype_ids': list(phenotype_ids)}).scalar()
