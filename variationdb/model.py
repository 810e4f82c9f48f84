from typing import List, Union

from pydantic import BaseModel


class Phenotype(BaseModel):
    phenotype_id: int
    description: Union[str, None]


class PhenotypeFeature(BaseModel):
    phenotype_feature_id: int
    phenotype_id: int
    object_id: Union[str, None]
    type: Union[str, None]


class PhenotypeOntologyAccession(BaseModel):
    phenotype_id: int
    accession: str
    mapped_by_attrib: Union[str, None]
    mapping_type: Union[str, None]


class PhenotypeMapping(BaseModel):
    old_phenotype_id: int
    new_phenotype_id: int


class ExactDuplicate(BaseModel):
    description: str
    phenotype_ids: List[int]
    kept_phenotype_id: int


class RationaliseSummary(BaseModel):
    dry_run: bool = False
    mapping_table_dropped: bool = False
    duplicates: int = 0
    phenotype_features_backed_up: int = 0
    phenotype_features_updated: int = 0
    phenotypes_backed_up: int = 0
    phenotypes_deleted: int = 0
    ontology_accessions_backed_up: int = 0
    ontology_accessions_updated: int = 0
    ontology_accessions_deleted: int = 0
    exact_duplicates: List[ExactDuplicate] = []
