# ragchat/memory/history.py
from typing import List, Tuple

from ragchat.models import Turn


class ChatHistory:
    """
    Append-only record of the session's chat turns.

    Turns are only ever added in user/assistant pairs, so a failed
    exchange can never leave a dangling user turn behind.
    """

    def __init__(self):
        self._turns: List[Turn] = []

    def append_exchange(self, query: str, reply: str) -> Tuple[Turn, Turn]:
        user_turn = Turn(role="user", content=query)
        assistant_turn = Turn(role="assistant", content=reply)

        # one extend so readers never observe only half of the pair
        self._turns.extend((user_turn, assistant_turn))

        return user_turn, assistant_turn

    def turns(self) -> Tuple[Turn, ...]:
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)
