"""Tests for the prediction queries (mismatch finder and dashboard rows)."""

from models import Image, Prediction, TreeImage
from services.predictions import find_mismatched_predictions, find_prediction_rows


def test_mismatch_finder_excludes_matches_and_unlabeled(seed):
    rows = find_mismatched_predictions(seed)

    assert len(rows) == 1
    row = rows[0]
    assert row.tree_id == 1
    assert row.predicted_specie_id == 1
    assert row.labeled_specie_id == 2
    assert row.predicted_common_name == "Acacia"
    assert row.labeled_common_name == "Ficus religiosa"
    assert row.image_name == "img1.jpg"
    assert row.compressed_image_name is None


def test_mismatch_finder_returns_one_row_per_tree_image(seed):
    seed.add(Image(id=10, name="img1b.jpg", name_compressed="img1b_compressed.jpg"))
    seed.flush()
    seed.add(TreeImage(tree_id=1, image_id=10))
    seed.commit()

    rows = find_mismatched_predictions(seed)

    assert [(r.image_name, r.compressed_image_name) for r in rows] == [
        ("img1.jpg", None),
        ("img1b.jpg", "img1b_compressed.jpg"),
    ]


def test_missing_species_reference_yields_null_name(seed):
    # species 4 has no English name, species 99 does not exist
    seed.add_all([
        Prediction(tree_id=2, predicted_specie_id=4, labeled_specie_id=3,
                   model_name="yolo-cls", model_version="v2"),
        Prediction(tree_id=3, predicted_specie_id=3, labeled_specie_id=99,
                   model_name="yolo-cls", model_version="v2"),
    ])
    seed.commit()

    rows = {r.tree_id: r for r in find_mismatched_predictions(seed)}

    assert rows[2].predicted_common_name is None
    assert rows[2].labeled_common_name == "Neem"
    assert rows[3].predicted_common_name == "Neem"
    assert rows[3].labeled_common_name is None


def test_prediction_rows_include_every_prediction(seed):
    rows = find_prediction_rows(seed)

    assert [r.tree_id for r in rows] == [1, 2, 3]
    unlabeled = rows[2]
    assert unlabeled.labeled_specie_id is None
    assert unlabeled.labeled_common_name is None
    assert rows[1].compressed_image_name == "img2_compressed.jpg"
