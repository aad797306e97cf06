from typing import NewType

MatchId = NewType("MatchId", int)
UserId = NewType("UserId", int)
