"""
Prediction queries shared by the trees, debug and versioning routers.

Every query joins a prediction to its tree's images and to the predicted and
labeled species, reading only the English common name.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import Select, select
from sqlalchemy.orm import Session, aliased

from models import Image, Prediction, Species, Tree, TreeImage

logger = logging.getLogger(__name__)

COMMON_NAME_LOCALE = "en"


@dataclass
class MismatchedPrediction:
    """A prediction whose predicted and labeled species differ, for one image."""

    tree_id: int
    predicted_specie_id: int
    labeled_specie_id: int
    predicted_common_name: Optional[str]
    labeled_common_name: Optional[str]
    image_name: str
    compressed_image_name: Optional[str] = None


def prediction_rows_select() -> Select:
    """
    Build the tree/prediction/image select used by the dashboard.

    A species id with no species row yields a NULL common name
    (LEFT JOIN), never an error.
    """
    predicted = aliased(Species)
    labeled = aliased(Species)

    return (
        select(
            Tree.id.label("tree_id"),
            Image.name.label("image_name"),
            Image.name_compressed.label("compressed_image_name"),
            Prediction.predicted_specie_id,
            predicted.common_name[COMMON_NAME_LOCALE].as_string().label("predicted_common_name"),
            Prediction.labeled_specie_id,
            labeled.common_name[COMMON_NAME_LOCALE].as_string().label("labeled_common_name"),
        )
        .select_from(Tree)
        .join(Prediction, Prediction.tree_id == Tree.id)
        .join(TreeImage, TreeImage.tree_id == Tree.id)
        .join(Image, Image.id == TreeImage.image_id)
        .outerjoin(predicted, predicted.id == Prediction.predicted_specie_id)
        .outerjoin(labeled, labeled.id == Prediction.labeled_specie_id)
    )


def find_prediction_rows(db: Session) -> list:
    """Get every tree/prediction/image row, ordered by tree."""
    stmt = prediction_rows_select().order_by(Tree.id, Prediction.id, Image.id)
    return db.execute(stmt).all()


def find_mismatched_predictions(db: Session) -> List[MismatchedPrediction]:
    """
    Find predictions where the predicted and labeled species differ.

    Rows where either species id is NULL are excluded.

    Args:
        db: Database session

    Returns:
        One MismatchedPrediction per (prediction, tree image)
    """
    stmt = (
        prediction_rows_select()
        .where(
            Prediction.predicted_specie_id.is_not(None),
            Prediction.labeled_specie_id.is_not(None),
            Prediction.predicted_specie_id != Prediction.labeled_specie_id,
        )
        .order_by(Tree.id, Prediction.id, Image.id)
    )
    rows = db.execute(stmt).all()

    logger.info(f"Found {len(rows)} predictions with mismatched species")

    return [
        MismatchedPrediction(
            tree_id=row.tree_id,
            predicted_specie_id=row.predicted_specie_id,
            labeled_specie_id=row.labeled_specie_id,
            predicted_common_name=row.predicted_common_name,
            labeled_common_name=row.labeled_common_name,
            image_name=row.image_name,
            compressed_image_name=row.compressed_image_name,
        )
        for row in rows
    ]
