"""
Species Router - API endpoints for species reference data

Endpoints:
  GET    /species              - List all species with English common names
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from database.connection import get_db
from models import Species, SpeciesRead
from services.predictions import COMMON_NAME_LOCALE

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[SpeciesRead])
def get_species(db: Session = Depends(get_db)):
    """
    Get all species.

    Returns:
        List of species with their English common name
    """
    try:
        rows = db.execute(
            select(
                Species.id,
                Species.common_name[COMMON_NAME_LOCALE].as_string().label("common_name"),
            ).order_by(Species.id)
        ).all()

        species = [{"id": row.id, "common_name": row.common_name} for row in rows]
        logger.info(f"Fetched {len(species)} species")
        return species

    except Exception as e:
        logger.error(f"Database error while fetching species: {e}")
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")
