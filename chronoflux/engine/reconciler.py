"""
World-state reconciler: the authoritative state transition for one turn.

Everything in ``reconcile`` runs inside one store transaction. Resource and
relationship arithmetic is add-then-clamp, nations the model names but the
game does not know yet are created on first mention, and the final turn
counter advance is conditional on the counter still holding the value the
turn was based on. Any failure rolls the whole turn back.
"""

from typing import Dict, List, Optional

from chronoflux.db.store import Document, DocumentStore, StoreTransaction, now_ms
from chronoflux.errors import (
    ConcurrentTurnConflictError,
    GameNotFoundError,
    NationNotFoundError,
    PlayerNationUnsetError,
)
from chronoflux.schemas.ai import (
    MaterializedEvent,
    MergedTurnPayload,
    NewNationSpec,
    RelationshipChange,
    TurnSummary,
)
from chronoflux.schemas.world import Resources, clamp_score
from chronoflux.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_GOVERNMENT = "Unknown"

PLACEHOLDER_CONSEQUENCES = "AI processing - consequences will be generated"
PLACEHOLDER_NARRATIVE = "AI processing - narrative will be generated"


class NationResolver:
    """
    Per-turn name -> nation id cache.

    Built from every nation in the game when the turn starts. A name that is
    not in the cache is created once, with the model's attributes when it
    supplied some, and every later mention in the same turn reuses that id.
    Names match exactly.
    """

    def __init__(
        self,
        tx: StoreTransaction,
        game_id: str,
        new_nations: Optional[Dict[str, NewNationSpec]] = None,
    ):
        self.tx = tx
        self.game_id = game_id
        self.new_nations = new_nations or {}
        self.ids_by_name: Dict[str, str] = {}
        self.created: List[str] = []

        for nation in tx.query("nations").where(game_id=game_id).collect():
            # First nation wins when two share a display name
            self.ids_by_name.setdefault(nation["name"], nation["id"])

    def resolve(self, name: Optional[str]) -> Optional[str]:
        if not name or not name.strip():
            return None
        name = name.strip()

        nation_id = self.ids_by_name.get(name)
        if nation_id:
            return nation_id

        spec = self.new_nations.get(name)
        if spec is not None:
            fields = {
                "government": spec.government or DEFAULT_GOVERNMENT,
                "resources": spec.resources.clamped().to_document(),
                "territories": list(spec.territories),
            }
        else:
            fields = {
                "government": DEFAULT_GOVERNMENT,
                "resources": Resources().to_document(),
                "territories": [],
            }

        nation_id = self.tx.insert(
            "nations",
            {
                "game_id": self.game_id,
                "name": name,
                "is_player_controlled": False,
                **fields,
            },
        )
        self.ids_by_name[name] = nation_id
        self.created.append(nation_id)
        logger.info(
            f"[Reconciler] Created nation '{name}'"
            f"{' from AI attributes' if spec is not None else ' with defaults'}",
            extra={"component": "Reconciler", "game_id": self.game_id, "nation_id": nation_id},
        )
        return nation_id


def find_relationship(
    tx: StoreTransaction, game_id: str, nation_a: str, nation_b: str
) -> Optional[Document]:
    """Relationship between two nations regardless of stored order"""
    pair = {nation_a, nation_b}
    return (
        tx.query("relationships")
        .where(game_id=game_id)
        .filter(lambda r: {r["nation1_id"], r["nation2_id"]} == pair)
        .first()
    )


def apply_resource_delta(
    tx: StoreTransaction, nation: Document, delta: Dict[str, float]
) -> Dict[str, float]:
    resources = Resources.from_document(nation.get("resources")).apply_delta(delta)
    document = resources.to_document()
    tx.patch("nations", nation["id"], {"resources": document})
    return document


def apply_relationship_change(
    tx: StoreTransaction,
    game_id: str,
    nation1_id: str,
    nation2_id: str,
    score_change: float,
    status: Optional[str] = None,
) -> Document:
    """
    Add ``score_change`` to the pair's score, clamped to [-100, 100].

    A missing relationship is created with the clamped delta as its score and
    ``status`` (default neutral).
    """
    existing = find_relationship(tx, game_id, nation1_id, nation2_id)
    if existing:
        fields: Document = {
            "relationship_score": clamp_score(existing["relationship_score"] + score_change)
        }
        if status:
            fields["status"] = status
        tx.patch("relationships", existing["id"], fields)
        existing.update(fields)
        return existing

    document = {
        "game_id": game_id,
        "nation1_id": nation1_id,
        "nation2_id": nation2_id,
        "status": status or "neutral",
        "trade_agreements": False,
        "military_alliance": False,
        "relationship_score": clamp_score(score_change),
    }
    document["id"] = tx.insert("relationships", document)
    return document


class WorldStateReconciler:
    """Commits merged AI turn payloads to the store"""

    def __init__(self, store: DocumentStore):
        self.store = store

    def reconcile(
        self,
        game_id: str,
        player_action: str,
        payload: MergedTurnPayload,
        expected_turn: Optional[int] = None,
    ) -> TurnSummary:
        """
        Apply one turn.

        Args:
            game_id: Game to update
            player_action: Raw action text
            payload: Merged output of the AI stages
            expected_turn: Turn counter the payload was produced against;
                defaults to the value read at the start of this call

        Returns:
            TurnSummary of the committed turn

        Raises:
            GameNotFoundError, PlayerNationUnsetError, NationNotFoundError
            ConcurrentTurnConflictError: the counter moved; nothing is persisted
        """
        with self.store.transaction() as tx:
            game = tx.get("games", game_id)
            if not game:
                raise GameNotFoundError(game_id)
            player_nation_id = game.get("player_nation_id")
            if not player_nation_id:
                raise PlayerNationUnsetError(game_id)

            base_turn = game["current_turn"]
            if expected_turn is not None and expected_turn != base_turn:
                raise ConcurrentTurnConflictError(game_id, expected_turn, base_turn)

            player = tx.get("nations", player_nation_id)
            if not player:
                raise NationNotFoundError(player_nation_id)

            resolver = NationResolver(tx, game_id, payload.new_nations)
            turn_number = base_turn + 1

            new_resources = apply_resource_delta(tx, player, payload.resource_changes)
            logger.debug(
                f"[Reconciler] Player resources now {new_resources}",
                extra={"component": "Reconciler", "game_id": game_id},
            )

            self._apply_nation_updates(tx, resolver, player_nation_id, payload)
            self._apply_relationship_changes(
                tx, game_id, resolver, payload.relationship_changes
            )

            events = [
                MaterializedEvent(
                    type=event.type,
                    title=event.title,
                    description=event.description,
                    affected_nations=_unique(
                        resolver.resolve(name) for name in event.affected_nations
                    ),
                    impact=event.impact,
                )
                for event in payload.events
            ]
            event_documents = [event.model_dump() for event in events]

            turn_id = tx.insert(
                "turns",
                {
                    "game_id": game_id,
                    "turn_number": turn_number,
                    "player_action": player_action,
                    "ai_response": {
                        "events": event_documents,
                        "consequences": payload.consequences,
                        "narrative": payload.narrative,
                        "world_state_changes": payload.resource_changes,
                        "feasibility": payload.feasibility,
                    },
                    "timestamp": now_ms(),
                },
            )
            for event in event_documents:
                tx.insert(
                    "events", {"game_id": game_id, "turn_number": turn_number, **event}
                )

            game_fields: Document = {}
            if payload.history_summary:
                game_fields["history_summary"] = payload.history_summary

            if not tx.advance_turn(game_id, base_turn, game_fields):
                actual = tx.current_turn(game_id)
                logger.warning(
                    f"[Reconciler] Turn conflict on game {game_id}: "
                    f"expected {base_turn}, found {actual}"
                )
                raise ConcurrentTurnConflictError(game_id, base_turn, actual)

        logger.info(
            f"[Reconciler] Committed turn {turn_number} for game {game_id}",
            extra={
                "component": "Reconciler",
                "game_id": game_id,
                "turn_number": turn_number,
                "events": len(events),
                "created_nations": len(resolver.created),
            },
        )

        return TurnSummary(
            success=True,
            turn_number=turn_number,
            turn_id=turn_id,
            events=events,
            narrative=payload.narrative,
            consequences=payload.consequences,
            resource_changes=payload.resource_changes,
            feasibility=payload.feasibility,
            created_nations=resolver.created,
        )

    def _apply_nation_updates(
        self,
        tx: StoreTransaction,
        resolver: NationResolver,
        player_nation_id: str,
        payload: MergedTurnPayload,
    ):
        for name, delta in payload.nation_updates.items():
            nation_id = resolver.resolve(name)
            if not nation_id:
                continue
            if nation_id == player_nation_id:
                # The player's delta comes only from the interpretation stage
                logger.debug(f"[Reconciler] Ignoring nation update for player nation '{name}'")
                continue
            nation = tx.get("nations", nation_id)
            if nation:
                apply_resource_delta(tx, nation, delta)

    def _apply_relationship_changes(
        self,
        tx: StoreTransaction,
        game_id: str,
        resolver: NationResolver,
        changes: List[RelationshipChange],
    ):
        for change in changes:
            nation1_id = resolver.resolve(change.nation1)
            nation2_id = resolver.resolve(change.nation2)
            if not nation1_id or not nation2_id or nation1_id == nation2_id:
                logger.debug(
                    f"[Reconciler] Skipping relationship change "
                    f"{change.nation1!r} -> {change.nation2!r}"
                )
                continue
            apply_relationship_change(
                tx,
                game_id,
                nation1_id,
                nation2_id,
                change.score_change,
                change.status_change,
            )

    def submit_turn(self, game_id: str, player_action: str) -> Dict[str, object]:
        """
        Record a turn without any AI processing.

        Offline mode: inserts a placeholder turn and advances the counter
        under the same guard as ``reconcile``. World state is left untouched.
        """
        with self.store.transaction() as tx:
            game = tx.get("games", game_id)
            if not game:
                raise GameNotFoundError(game_id)
            base_turn = game["current_turn"]
            turn_number = base_turn + 1

            tx.insert(
                "turns",
                {
                    "game_id": game_id,
                    "turn_number": turn_number,
                    "player_action": player_action,
                    "ai_response": {
                        "events": [],
                        "consequences": PLACEHOLDER_CONSEQUENCES,
                        "narrative": PLACEHOLDER_NARRATIVE,
                        "world_state_changes": {},
                    },
                    "timestamp": now_ms(),
                },
            )
            if not tx.advance_turn(game_id, base_turn):
                raise ConcurrentTurnConflictError(
                    game_id, base_turn, tx.current_turn(game_id)
                )

        logger.info(f"[Reconciler] Recorded offline turn {turn_number} for game {game_id}")
        return {"success": True, "turn_number": turn_number}


def _unique(ids) -> List[str]:
    seen: List[str] = []
    for nation_id in ids:
        if nation_id and nation_id not in seen:
            seen.append(nation_id)
    return seen
