"""
Scenario management API endpoints.

Built-in scenarios are seeded once; user scenarios are upserted by
name, period and start year and can be deleted while no unfinished game
uses them.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from chronoflux.api.deps import get_store
from chronoflux.db.store import DocumentStore
from chronoflux.engine.initializer import GameInitializer
from chronoflux.schemas.world import ScenarioSpec
from chronoflux.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/")
async def list_scenarios(store: DocumentStore = Depends(get_store)) -> List[Dict[str, Any]]:
    """List all scenarios, built-in and user-created"""
    return GameInitializer(store).list_scenarios()


@router.post("/seed")
async def seed_scenarios(store: DocumentStore = Depends(get_store)):
    message = GameInitializer(store).seed_scenarios()
    return {"message": message}


@router.get("/{scenario_id}")
async def get_scenario(scenario_id: str, store: DocumentStore = Depends(get_store)):
    return GameInitializer(store).get_scenario(scenario_id)


@router.put("/")
async def create_or_update_scenario(
    spec: ScenarioSpec, store: DocumentStore = Depends(get_store)
):
    """
    Create a user scenario, or update the one with the same name, period
    and start year.
    """
    logger.info(f"Saving scenario '{spec.name}' ({spec.start_year})")
    return GameInitializer(store).create_or_update_scenario(spec)


@router.delete("/{scenario_id}")
async def delete_scenario(scenario_id: str, store: DocumentStore = Depends(get_store)):
    return GameInitializer(store).delete_scenario(scenario_id)
