# services/kitchen_display/display.py
from __future__ import annotations

from typing import Optional

from .action_handler import ActionHandler
from .aggregator import Aggregator, CombinedView
from .connections import ConnectionManager, fire_and_forget
from .rendering import EMPTY_TEXT, KITCHEN_AREA, Board, render_board


class KitchenDisplay:
    """Render sink: turns every combined view into a board and pushes it to kitchen screens."""

    def __init__(
        self,
        aggregator: Aggregator,
        handler: ActionHandler,
        connections: Optional[ConnectionManager] = None,
        prep_area: str = KITCHEN_AREA,
        empty_text: str = EMPTY_TEXT,
    ) -> None:
        self.aggregator = aggregator
        self.handler = handler
        self.connections = connections or ConnectionManager()
        self.prep_area = prep_area
        self.empty_text = empty_text
        self.board = Board(cards=[], empty_text=empty_text)

        aggregator.add_sink(self.on_view)
        handler.add_listener(self.on_lock_change)

    def on_view(self, view: CombinedView) -> None:
        self.handler.release_settled(view)
        self._render(view)

    def on_lock_change(self) -> None:
        if self.aggregator.latest is not None:
            self._render(self.aggregator.latest)

    def _render(self, view: CombinedView) -> None:
        self.board = render_board(
            view.orders,
            view.new_ids,
            on_ready=self.handler.mark_ready,
            processing=self.handler.processing_ids(),
            updated_at=view.updated_at,
            prep_area=self.prep_area,
            empty_text=self.empty_text,
        )
        if self.connections.active_connections:
            fire_and_forget(self.connections.broadcast("board", self.board.model_dump()))
