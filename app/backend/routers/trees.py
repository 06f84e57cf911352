"""
Trees Router - API endpoints for tree species review

Endpoints:
  GET    /trees                    - List trees with predictions and images
  PUT    /trees/{tree_id}/species  - Set predicted/labeled species for a model
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from database.connection import get_db
from models import Prediction, Tree, TreeRead, UpdateSpeciesRequest, UpdateSpeciesResponse
from services.predictions import find_prediction_rows

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[TreeRead])
def get_trees(db: Session = Depends(get_db)):
    """
    Get all trees with their images and species information.

    Returns one row per (tree, prediction, image).
    """
    try:
        rows = find_prediction_rows(db)
        trees = [dict(row._mapping) for row in rows]
        logger.info(f"Fetched {len(trees)} trees")
        return trees

    except Exception as e:
        logger.error(f"Database error while fetching trees: {e}")
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")


@router.put("/{tree_id}/species", response_model=UpdateSpeciesResponse)
def update_tree_species(
    tree_id: int,
    update: Optional[UpdateSpeciesRequest] = None,
    db: Session = Depends(get_db),
):
    """
    Update the species classification of a tree.

    Creates the prediction for (tree, model_name, model_version) on first
    use and updates it in place afterwards, then sets the tree's recognized
    species to the labeled species. Runs in a single transaction.

    Raises:
        HTTPException 400: If any field is missing
        HTTPException 404: If the tree does not exist
    """
    if (
        update is None
        or not update.predicted_specie_id
        or not update.labeled_specie_id
        or not update.model_name
        or not update.model_version
    ):
        logger.warning(f"Missing required fields for tree {tree_id} update")
        raise HTTPException(status_code=400, detail="Missing required fields")

    logger.info(
        f"Updating tree {tree_id} species: predicted={update.predicted_specie_id} "
        f"labeled={update.labeled_specie_id} model={update.model_name}:{update.model_version}"
    )

    try:
        tree = db.get(Tree, tree_id)
        if not tree:
            db.rollback()
            logger.warning(f"Tree {tree_id} not found")
            raise HTTPException(status_code=404, detail="Tree not found")

        prediction = db.execute(
            select(Prediction).where(
                Prediction.tree_id == tree_id,
                Prediction.model_name == update.model_name,
                Prediction.model_version == update.model_version,
            )
        ).scalars().first()

        if prediction:
            logger.debug(f"Updating existing prediction {prediction.id} for tree {tree_id}")
            prediction.predicted_specie_id = update.predicted_specie_id
            prediction.labeled_specie_id = update.labeled_specie_id
        else:
            logger.debug(f"Creating new prediction for tree {tree_id}")
            prediction = Prediction(
                tree_id=tree_id,
                predicted_specie_id=update.predicted_specie_id,
                labeled_specie_id=update.labeled_specie_id,
                model_name=update.model_name,
                model_version=update.model_version,
            )
            db.add(prediction)

        db.flush()  # Get the ID
        prediction_id = prediction.id

        tree.recognized_specie_id = update.labeled_specie_id
        db.commit()

        logger.info(f"Updated tree {tree_id} species (prediction {prediction_id})")
        return {
            "tree_id": tree_id,
            "prediction_id": prediction_id,
            "message": "Tree species updated successfully",
        }

    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Database error while updating tree {tree_id} species: {e}")
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")
