class GameError(Exception):
    """Base class for every failure raised by a game session or the registry."""


class RejectedIntent(GameError):
    """An intent that is dropped without a state change or a broadcast."""


class IllegalMove(RejectedIntent):
    pass


class NotYourTurn(RejectedIntent):
    pass


class NotSeated(RejectedIntent):
    pass


class MoveInFlight(RejectedIntent):
    pass


class RotationCapExceeded(RejectedIntent):
    pass


class GameNotFound(GameError):
    def __init__(self, game_id: str) -> None:
        super().__init__(f"unknown game {game_id}")
        self.game_id = game_id


class GameFull(GameError):
    def __init__(self, game_id: str) -> None:
        super().__init__(f"game {game_id} has no free seat")
        self.game_id = game_id
