"""
FlowCanvas - Edge Creation
Holds the edge being drawn and turns it into a real edge when it lands on a
compatible port.
"""

from typing import Optional
import logging

from graph_model import GraphModel
from models import EdgeDraft, EdgeData, INPUT, OUTPUT


logger = logging.getLogger(__name__)


class EdgeCreationProtocol:
    """
    At most one draft exists. The anchor port's direction decides which end of
    the finished edge it becomes, whichever port the user pressed first.
    """

    def __init__(self, model: GraphModel):
        self.model = model
        self._draft: Optional[EdgeDraft] = None

    @property
    def draft(self) -> Optional[EdgeDraft]:
        return self._draft

    @property
    def is_active(self) -> bool:
        return self._draft is not None

    def start(self, anchor_node_id: str, anchor_port_id: str,
              anchor_direction: str, data_type: str = "table") -> bool:
        """Begin a draft, discarding any unfinished one."""
        if self._draft is not None:
            logger.debug("Discarding unfinished draft from %s", self._draft.anchor_node_id)
            self._draft = None
        if anchor_direction not in (INPUT, OUTPUT):
            logger.debug("Rejected draft with direction %r", anchor_direction)
            return False
        if not self.model.is_connectable(anchor_node_id):
            logger.debug("Rejected draft from unavailable node %s", anchor_node_id)
            return False
        self._draft = EdgeDraft(anchor_node_id, anchor_port_id, anchor_direction, data_type)
        return True

    def complete(self, target_node_id: str, target_port_id: str,
                 target_direction: str) -> Optional[EdgeData]:
        """Resolve the draft against a target port. The draft is always consumed."""
        draft, self._draft = self._draft, None
        if draft is None:
            return None
        if target_direction == draft.anchor_direction:
            logger.debug("Rejected %s -> %s connection", draft.anchor_direction, target_direction)
            return None

        if draft.anchor_direction == OUTPUT:
            edge = self.model.create_edge(draft.anchor_node_id, draft.anchor_port_id,
                                          target_node_id, target_port_id)
        else:
            edge = self.model.create_edge(target_node_id, target_port_id,
                                          draft.anchor_node_id, draft.anchor_port_id)
        return edge

    def cancel(self) -> None:
        self._draft = None
