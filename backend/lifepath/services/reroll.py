"""
Shared re-roll protocol for milestone and prediction nodes.

is_loading is set before the first await and cleared in every completion
branch, so a node can never stay stuck in the loading state.
"""
import logging

from lifepath.services.pending_ops import OperationInvalidated, PendingOperationQueue
from lifepath.services.text_generator import usable_text
from lifepath.world.life_graph import LifeGraph

logger = logging.getLogger(__name__)


async def reroll_node_content(
    graph: LifeGraph,
    queue: PendingOperationQueue,
    node_id: str,
    category: str,
    context: str,
) -> bool:
    """Replace a node's content with freshly generated text.

    Returns True when new content was written. Failures keep the prior content.
    """
    graph.update_node(node_id, is_loading=True)
    try:
        text = await queue.submit(category, node_id, context)
    except OperationInvalidated:
        # node removed mid-flight; nothing to restore
        logger.debug("Re-roll of %s dropped: node removed", node_id)
        graph.update_node(node_id, is_loading=False)
        return False
    except Exception as exc:
        logger.warning("Re-roll of %s failed, keeping prior content: %s", node_id, exc)
        graph.update_node(node_id, is_loading=False)
        return False

    node = graph.get_node(node_id)
    if node is None:
        return False
    if node.is_accepted:
        # accepted while loading: content is final
        graph.update_node(node_id, is_loading=False)
        return False
    graph.update_node(node_id, content=usable_text(text, category), is_loading=False)
    return True
