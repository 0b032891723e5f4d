# games.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from django.db import transaction

from . import ledger
from .models import LedgerKind
from .results import Outcome, Reason

log = logging.getLogger(__name__)


def _memory_reward(score: int, elapsed: int) -> int:
    # flat 20 plus one coin per 10 seconds played
    return 20 + elapsed // 10


def _clicker_reward(score: int, elapsed: int) -> int:
    # one coin per click, at most 50
    return min(score, 50)


@dataclass(frozen=True)
class Game:
    id: str
    name: str
    icon: str
    max_reward: int
    formula: Callable[[int, int], int]

    def reward_for(self, score: int, elapsed: int) -> int:
        return max(0, min(int(self.formula(score, elapsed)), self.max_reward))

    def as_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "icon": self.icon, "max_reward": self.max_reward}


GAMES: Dict[str, Game] = {
    "memory": Game("memory", "Memory Match", "🧠", 100, _memory_reward),
    "clicker": Game("clicker", "Coin Clicker", "🖱️", 150, _clicker_reward),
}


def get_game(game_id: str) -> Optional[Game]:
    return GAMES.get((game_id or "").strip().lower())


def reward_for(game_id: str, score: int, elapsed: int) -> Optional[int]:
    game = get_game(game_id)
    if game is None:
        return None
    return game.reward_for(score, elapsed)


@transaction.atomic
def settle(user_id, game_id: str, score: int, time_elapsed: int) -> Outcome:
    """
    Turn a finished game into coins. Called once per completed session;
    abandoned sessions never reach here.
    """
    game = get_game(game_id)
    if game is None:
        return Outcome.rejected(Reason.NOT_FOUND, "Unknown game.")
    try:
        score, time_elapsed = int(score), int(time_elapsed)
    except (TypeError, ValueError):
        return Outcome.rejected(Reason.INVALID_SCORE)
    if score < 0 or time_elapsed < 0:
        return Outcome.rejected(Reason.INVALID_SCORE)

    profile = ledger.lock_profile(user_id)
    if profile is None:
        return Outcome.rejected(Reason.NOT_FOUND, "User not found.")
    if profile.is_blocked:
        return Outcome.rejected(Reason.BLOCKED)

    reward = game.reward_for(score, time_elapsed)
    ledger.credit(
        profile,
        reward,
        kind=LedgerKind.GAME,
        memo=f"{game.name}: score {score} in {time_elapsed}s",
    )
    log.debug("%s settled %s score=%s elapsed=%s reward=%s", profile.client_id, game.id, score, time_elapsed, reward)
    return Outcome.accepted(f"{game.name} complete! Earned {reward} coins.", amount=reward, obj=game)
