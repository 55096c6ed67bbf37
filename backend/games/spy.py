"""
Spy Engine: per-room state machine for "Who is the spy".

Phases: REVEAL → GAMEPLAY → VOTING → RESULT, with REVEAL allowed to jump
straight to VOTING and RESULT looping back to a fresh REVEAL on reset.

Deal:
- One location drawn uniformly from the catalog
- One spy drawn uniformly from the roster; the spy gets no role and no location
- Civilians get a role from a shuffled copy of the location's role list,
  cycled by roster index when players outnumber roles

Votes are last-write-wins per voter. A player leaving takes their own ballot
and every ballot cast for them out of the tally. Resolution favours the spy on
abstention and on ties.
"""
import logging
import random
from typing import Any, Dict, List, Optional, Sequence

from config import settings
from games.base import GameEngine
from games.spy_catalog import (
    DEFAULT_LANGUAGE,
    LOCATIONS,
    get_all_ui_text,
    get_ui_text,
    location_name,
    location_roles,
)
from models.errors import InvalidState, NotFound, ValidationError
from models.games import Location, RoleAssignment, SpyPhase, SpySession, Winner
from models.room import GameType, Player, _utcnow

logger = logging.getLogger(__name__)


# Legal phase moves; reset_game() is the only way out of RESULT.
_TRANSITIONS: Dict[SpyPhase, tuple] = {
    SpyPhase.REVEAL: (SpyPhase.GAMEPLAY, SpyPhase.VOTING),
    SpyPhase.GAMEPLAY: (SpyPhase.VOTING,),
    SpyPhase.VOTING: (SpyPhase.RESULT,),
    SpyPhase.RESULT: (),
}


class SpyGameManager(GameEngine[SpySession]):

    game_type = GameType.SPY

    def __init__(
        self,
        locations: Optional[List[Location]] = None,
        min_players: int = settings.spy_min_players,
        round_seconds: int = settings.spy_round_seconds,
    ):
        super().__init__()
        self.locations = locations if locations is not None else LOCATIONS
        self.min_players = min_players
        self.round_seconds = round_seconds

    # ── Deal ───────────────────────────────────────────────────────────────────

    def create_game(
        self,
        room_code: str,
        players: Sequence[Player],
        language: str = DEFAULT_LANGUAGE,
        round_number: int = 1,
    ) -> SpySession:
        if len(players) < self.min_players:
            raise ValidationError(
                f"Need at least {self.min_players} players to start the game"
            )
        if not self.locations:
            raise InvalidState("No locations available")

        location = random.choice(self.locations)
        spy_id = random.choice(players).id
        assignments = self._assign_roles([p.id for p in players], spy_id, location, language)

        game = SpySession(
            room_code=room_code,
            location=location,
            language=language,
            spy_id=spy_id,
            assignments=assignments,
            timer=self.round_seconds,
            round=round_number,
        )
        self._games[room_code] = game
        logger.info(
            f"[{room_code}] Spy round {round_number} dealt to {len(players)} players "
            f"(location: {location_name(location, DEFAULT_LANGUAGE)})"
        )
        logger.debug(f"[{room_code}] Spy: {spy_id}")
        return game

    def _assign_roles(
        self,
        player_ids: List[str],
        spy_id: str,
        location: Location,
        language: str,
    ) -> Dict[str, RoleAssignment]:
        slots = list(range(len(location_roles(location, language))))
        random.shuffle(slots)  # Fisher–Yates

        assignments: Dict[str, RoleAssignment] = {}
        for index, pid in enumerate(player_ids):
            if pid == spy_id:
                assignments[pid] = RoleAssignment(is_spy=True)
            else:
                assignments[pid] = self._render(location, slots[index % len(slots)], language)
        return assignments

    @staticmethod
    def _render(location: Location, role_index: int, language: str) -> RoleAssignment:
        return RoleAssignment(
            is_spy=False,
            role_index=role_index,
            role=location_roles(location, language)[role_index],
            location=location_name(location, language),
        )

    # ── Phase transitions ──────────────────────────────────────────────────────

    def _require(self, room_code: str) -> SpySession:
        game = self.get_game(room_code)
        if not game:
            raise NotFound("No spy game in progress for this room")
        return game

    def _advance(self, game: SpySession, next_phase: SpyPhase) -> None:
        if next_phase not in _TRANSITIONS[game.phase]:
            raise InvalidState(
                f"Cannot move from {game.phase.value} to {next_phase.value}"
            )
        logger.info(f"[{game.room_code}] Spy phase: {game.phase.value} → {next_phase.value}")
        game.phase = next_phase

    def start_game(self, room_code: str) -> SpySession:
        game = self._require(room_code)
        self._advance(game, SpyPhase.GAMEPLAY)
        game.started_at = _utcnow()
        return game

    def start_voting(self, room_code: str) -> SpySession:
        game = self._require(room_code)
        self._advance(game, SpyPhase.VOTING)
        game.votes.clear()
        return game

    def reset_game(self, room_code: str, players: Sequence[Player]) -> SpySession:
        """New round for the same room: new location, new spy, same language."""
        game = self._require(room_code)
        if game.phase != SpyPhase.RESULT:
            raise InvalidState("The current round has not been resolved yet")
        return self.create_game(room_code, players, game.language, round_number=game.round + 1)

    # ── Assignments ────────────────────────────────────────────────────────────

    def get_player_assignment(self, room_code: str, player_id: str) -> Optional[Dict[str, Any]]:
        game = self.get_game(room_code)
        if not game:
            return None
        assignment = game.assignments.get(player_id)
        return assignment.to_public() if assignment else None

    def set_language(self, room_code: str, language: str) -> SpySession:
        """Re-render every assignment in `language`. Same spy, same location, same role slots."""
        game = self._require(room_code)
        game.language = language
        for pid, assignment in game.assignments.items():
            if not assignment.is_spy:
                game.assignments[pid] = self._render(game.location, assignment.role_index, language)
        return game

    def update_timer(self, room_code: str, remaining: int) -> SpySession:
        game = self._require(room_code)
        game.timer = remaining
        return game

    # ── Votes ──────────────────────────────────────────────────────────────────

    def on_player_left(self, room_code: str, player_id: str) -> None:
        game = self.get_game(room_code)
        if game:
            game.votes = {
                voter: target for voter, target in game.votes.items()
                if player_id not in (voter, target)
            }

    def submit_vote(
        self, room_code: str, voter_id: str, voted_for_id: str
    ) -> Optional[Dict[str, Any]]:
        game = self.get_game(room_code)
        if not game or game.phase != SpyPhase.VOTING:
            return None
        game.votes[voter_id] = voted_for_id
        return {"totalVotes": len(game.votes)}

    def process_votes(self, room_code: str) -> Optional[Dict[str, Any]]:
        """
        Tally and resolve the round.

        Resolution (ties and abstention favour the spy):
          no votes                       → SPY, "No votes were cast"
          several players tied for most  → SPY, "Vote was tied"
          single most-voted is the spy   → CIVILIANS, "Spy was identified"
          single most-voted is civilian  → SPY, "A civilian was eliminated"
        """
        game = self.get_game(room_code)
        if not game or game.phase != SpyPhase.VOTING:
            return None

        vote_counts: Dict[str, int] = {}
        for voted_for in game.votes.values():
            vote_counts[voted_for] = vote_counts.get(voted_for, 0) + 1

        suspect_ids: List[str] = []
        if vote_counts:
            max_votes = max(vote_counts.values())
            suspect_ids = [pid for pid, count in vote_counts.items() if count == max_votes]

        if not suspect_ids:
            winner, reason = Winner.SPY, "No votes were cast"
        elif len(suspect_ids) > 1:
            winner, reason = Winner.SPY, "Vote was tied"
        elif suspect_ids[0] == game.spy_id:
            winner, reason = Winner.CIVILIANS, "Spy was identified"
        else:
            winner, reason = Winner.SPY, "A civilian was eliminated"

        self._advance(game, SpyPhase.RESULT)
        game.winner = winner
        game.reason = reason
        logger.info(f"[{room_code}] Spy round resolved: {winner.value} ({reason})")

        return {
            "winner": winner.value,
            "reason": reason,
            "spyId": game.spy_id,
            "location": location_name(game.location, game.language),
            "voteCounts": vote_counts,
            "suspectIds": suspect_ids,
        }

    # ── UI text ────────────────────────────────────────────────────────────────

    def get_ui_text(self, room_code: str, key: str) -> str:
        game = self.get_game(room_code)
        if not game:
            return ""
        return get_ui_text(key, game.language)

    @staticmethod
    def get_all_ui_text(language: str = DEFAULT_LANGUAGE) -> Dict[str, str]:
        return get_all_ui_text(language)
