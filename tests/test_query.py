import pytest

from variationdb import query


def test_get_phenotypes_ordered_by_id(engine, seeder):
    seeder(engine, [(3, "Asthma"), (1, "Gout"), (2, None)])

    phenotypes = query.get_phenotypes(engine)

    assert [p.phenotype_id for p in phenotypes] == [1, 2, 3]
    assert phenotypes[1].description is None


def test_get_phenotype(engine, seeder):
    seeder(engine, [(1, "Gout")])

    assert query.get_phenotype(engine, 1).description == "Gout"
    with pytest.raises(ValueError):
        query.get_phenotype(engine, 99)


def test_get_phenotype_features(engine, seeder):
    seeder(engine, [(1, "Gout"), (2, "Asthma")], features=[(11, 1, 'rs2'), (10, 1, 'rs1'), (12, 2, 'rs3')])

    features = query.get_phenotype_features(engine, 1)

    assert [(f.phenotype_feature_id, f.object_id, f.type) for f in features] == \
           [(10, 'rs1', 'Variation'), (11, 'rs2', 'Variation')]
    assert query.get_phenotype_features(engine, 3) == []


def test_get_ontology_accessions(engine, seeder):
    seeder(engine, [(1, "Gout")], accessions=[(1, 'HP:0001997'), (1, 'EFO:0004274')])

    accessions = query.get_ontology_accessions(engine, 1)

    assert [a.accession for a in accessions] == ['EFO:0004274', 'HP:0001997']
    assert accessions[0].mapping_type == 'is'
    assert accessions[0].mapped_by_attrib is None


def test_count_phenotype_features(engine, seeder):
    seeder(engine, [(1, "Gout"), (2, "Asthma")], features=[(10, 1, 'rs1'), (11, 1, 'rs2'), (12, 2, 'rs3')])

    assert query.count_phenotype_features(engine, [1]) == 2
    assert query.count_phenotype_features(engine, [1, 2]) == 3
    assert query.count_phenotype_features(engine, []) == 0
