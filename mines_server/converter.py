from mines_server.domain.game_rules import game_state, is_finished
from mines_server.domain.grid_rules import (
    cell_coordinate,
    cell_index,
    is_revealed,
    iter_revealed_cells,
    revealed_count,
)
from mines_server.models.dc_models import CellStateModel
from mines_server.models.schema_models import (
    CellSchema,
    CellStatusSchema,
    GameSummarySchema,
)
from mines_server.models.schemas import Game


class DataConverter:
    """This class is used to convert game rows into the views sent to clients."""

    def convert_game_to_summary(self, game: Game) -> GameSummarySchema:
        """Convert a Game row to the public summary

        The seed (and the secret it was derived from) is only shown once the game is
        finished, otherwise anyone could compute the rest of the grid.

        Args:
            game (Game): The game row

        Returns:
            GameSummarySchema: The game and is a type for transmission to the client
        """
        disclose = is_finished(active=game.active, lost=game.lost) and game.secret_revealed
        return GameSummarySchema(
            game_id=game.game_id,
            principal=game.principal,
            state=game_state(
                active=game.active,
                lost=game.lost,
                randomness_fulfilled=game.external_random is not None,
                secret_revealed=game.secret_revealed,
            ),
            wager=game.wager,
            pot=game.pot,
            commitment=game.commitment,
            external_random=game.external_random,
            secret=game.secret if disclose else None,
            seed=game.seed if disclose else None,
            revealed_mask=game.revealed_mask,
            revealed_count=revealed_count(game.revealed_mask),
            mine_cell=cell_coordinate(game.mine_cell) if game.mine_cell is not None else None,
            active=game.active,
            lost=game.lost,
            secret_revealed=game.secret_revealed,
            created_at=game.created_at,
            ended_at=game.ended_at,
        )

    def convert_game_to_safe_cells(self, game: Game) -> list[CellSchema]:
        """Revealed cells minus the one that ended the game, in bit order."""
        return [
            CellSchema(x=x, y=y)
            for x, y in iter_revealed_cells(game.revealed_mask)
            if game.mine_cell != cell_index(x, y)
        ]

    def convert_game_to_cell_status(self, game: Game, x: int, y: int) -> CellStatusSchema:
        if not is_revealed(game.revealed_mask, x, y):
            state = CellStateModel.hidden
        elif game.mine_cell == cell_index(x, y):
            state = CellStateModel.mine
        else:
            state = CellStateModel.safe
        return CellStatusSchema(game_id=game.game_id, x=x, y=y, state=state)
