"""
LifeGraph -- canonical store for the life path timeline.

Nodes live in a networkx MultiDiGraph (edge key = edge id); edge order is kept
separately so snapshots list edges in creation order.

All mutations go through the public methods below. Each public mutation is one
transaction; ``batch()`` groups several into a single transaction so the render
surface never observes a half-applied promotion.

Do not touch ``self.graph`` from outside this class.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from contextlib import contextmanager
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple

import networkx as nx

from lifepath.models.life_graph import (
    PROTECTED_KINDS,
    GraphSnapshot,
    LifeEdge,
    LifeNode,
    NodeKind,
)

logger = logging.getLogger(__name__)

RemovalListener = Callable[[List[str]], None]
ChangeListener = Callable[[int], None]

# Fields the store treats as immutable identity
_IMMUTABLE_FIELDS = frozenset({"id", "kind"})


class GraphIntegrityError(ValueError):
    """Raised when a mutation would break id uniqueness or edge endpoints."""


class LifeGraph:
    """Node map + ordered edge list with transaction-shaped mutations."""

    def __init__(self) -> None:
        self.graph: nx.MultiDiGraph = nx.MultiDiGraph()
        self._edges: Dict[str, LifeEdge] = {}

        # ===== indexes =====
        self._kind_index: Dict[NodeKind, Set[str]] = defaultdict(set)
        self._group_index: Dict[str, Set[str]] = defaultdict(set)

        # ===== transactions =====
        self._revision: int = 0
        self._batch_depth: int = 0
        self._batch_dirty: bool = False

        self._removal_listeners: List[RemovalListener] = []
        self._change_listeners: List[ChangeListener] = []

    # =========================================================================
    # Listeners
    # =========================================================================

    def add_removal_listener(self, listener: RemovalListener) -> None:
        """Called with the ids of removed nodes, before the transaction commits."""
        self._removal_listeners.append(listener)

    def add_change_listener(self, listener: ChangeListener) -> None:
        """Called with the new revision after each committed transaction."""
        self._change_listeners.append(listener)

    # =========================================================================
    # Transactions
    # =========================================================================

    @property
    def revision(self) -> int:
        return self._revision

    @contextmanager
    def batch(self) -> Iterator["LifeGraph"]:
        """Group several mutations into one transaction.

        If the outermost batch raises, the store is restored to its state at
        entry and no revision is committed. Removal listeners that already ran
        are not replayed.
        """
        saved = self._save_state() if self._batch_depth == 0 else None
        self._batch_depth += 1
        try:
            yield self
        except Exception:
            if saved is not None:
                self._restore_state(saved)
                self._batch_dirty = False
                logger.warning("Graph batch failed; rolled back to revision %d", self._revision)
            raise
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._batch_dirty:
                self._batch_dirty = False
                self._commit()

    def _touch(self) -> None:
        if self._batch_depth:
            self._batch_dirty = True
        else:
            self._commit()

    def _commit(self) -> None:
        self._revision += 1
        for listener in list(self._change_listeners):
            listener(self._revision)

    def _save_state(self) -> tuple:
        return (
            self.graph.copy(),
            dict(self._edges),
            {kind: set(ids) for kind, ids in self._kind_index.items()},
            {gid: set(ids) for gid, ids in self._group_index.items()},
        )

    def _restore_state(self, saved) -> None:
        graph, edges, kind_index, group_index = saved
        self.graph = graph
        self._edges = edges
        self._kind_index = defaultdict(set, kind_index)
        self._group_index = defaultdict(set, group_index)

    # =========================================================================
    # Node operations
    # =========================================================================

    def add_nodes(self, nodes: Iterable[LifeNode]) -> None:
        """Add a batch of nodes. Any duplicate id rejects the whole batch."""
        nodes = list(nodes)
        seen: Set[str] = set()
        for node in nodes:
            if node.id in self.graph or node.id in seen:
                raise GraphIntegrityError(f"Duplicate node id: {node.id}")
            seen.add(node.id)
        if not nodes:
            return

        for node in nodes:
            self.graph.add_node(node.id, _node=node)
            self._index_node(node)
        self._touch()

    def update_node(self, node_id: str, **patch) -> Optional[LifeNode]:
        """Merge fields into a node.

        Unknown ids are a silent no-op: async completions may land after the
        node was removed and must not resurrect it.
        """
        old = self.get_node(node_id)
        if old is None:
            logger.debug("update_node: %s no longer exists, ignoring %s", node_id, sorted(patch))
            return None
        blocked = _IMMUTABLE_FIELDS.intersection(patch)
        if blocked:
            raise GraphIntegrityError(f"Cannot patch {sorted(blocked)} on {node_id}")

        new = old.model_copy(update=patch)
        self._deindex_node(old)
        self.graph.nodes[node_id]["_node"] = new
        self._index_node(new)
        self._touch()
        return new

    def remove_nodes(self, node_ids: Iterable[str]) -> Tuple[List[LifeNode], List[LifeEdge]]:
        """Remove nodes and every edge touching them in one transaction.

        Start/death anchors are skipped. Returns the removed nodes and edges.
        """
        targets: List[str] = []
        for node_id in dict.fromkeys(node_ids):
            node = self.get_node(node_id)
            if node is None:
                continue
            if node.kind in PROTECTED_KINDS:
                logger.warning("Refusing to remove %s node %s", node.kind.value, node_id)
                continue
            targets.append(node_id)
        if not targets:
            return [], []

        target_set = set(targets)
        removed_edges = [e for e in self._edges.values() if e.source in target_set or e.target in target_set]
        for edge in removed_edges:
            del self._edges[edge.id]

        removed_nodes: List[LifeNode] = []
        for node_id in targets:
            node = self.get_node(node_id)
            self._deindex_node(node)
            self.graph.remove_node(node_id)
            removed_nodes.append(node)

        for listener in list(self._removal_listeners):
            listener(targets)

        self._touch()
        return removed_nodes, removed_edges

    def get_node(self, node_id: str) -> Optional[LifeNode]:
        if node_id not in self.graph:
            return None
        return self.graph.nodes[node_id].get("_node")

    def has_node(self, node_id: str) -> bool:
        return node_id in self.graph

    def nodes(self, kind: Optional[NodeKind] = None) -> List[LifeNode]:
        """Nodes in insertion order, optionally filtered by kind."""
        result = []
        for node_id in self.graph.nodes:
            node = self.graph.nodes[node_id]["_node"]
            if kind is None or node.kind == kind:
                result.append(node)
        return result

    def node_count(self) -> int:
        return self.graph.number_of_nodes()

    def group_members(self, group_id: str) -> List[LifeNode]:
        """Prediction nodes sharing ``group_id``, in insertion order."""
        member_ids = self._group_index.get(group_id, set())
        return [n for n in self.nodes(NodeKind.PREDICTION) if n.id in member_ids]

    def group_ids(self) -> List[str]:
        return [gid for gid, members in self._group_index.items() if members]

    # =========================================================================
    # Edge operations
    # =========================================================================

    def add_edges(self, edges: Iterable[LifeEdge]) -> None:
        """Add a batch of edges. Endpoints must exist; all-or-nothing."""
        edges = list(edges)
        seen: Set[str] = set()
        for edge in edges:
            if edge.id in self._edges or edge.id in seen:
                raise GraphIntegrityError(f"Duplicate edge id: {edge.id}")
            for endpoint in (edge.source, edge.target):
                if endpoint not in self.graph:
                    raise GraphIntegrityError(f"Edge {edge.id} references missing node {endpoint}")
            seen.add(edge.id)
        if not edges:
            return

        for edge in edges:
            self._edges[edge.id] = edge
            self.graph.add_edge(edge.source, edge.target, key=edge.id)
        self._touch()

    def replace_edge_endpoint(self, source: str, old_target: str, new_target: str) -> int:
        """Retarget every ``source -> old_target`` edge onto ``new_target``.

        Edge ids and list positions are preserved. Returns the number of edges
        rewritten.
        """
        if new_target not in self.graph:
            raise GraphIntegrityError(f"Cannot retarget onto missing node {new_target}")
        matches = [e for e in self._edges.values() if e.source == source and e.target == old_target]
        for edge in matches:
            self.graph.remove_edge(edge.source, edge.target, key=edge.id)
            moved = edge.model_copy(update={"target": new_target})
            self._edges[edge.id] = moved
            self.graph.add_edge(moved.source, moved.target, key=moved.id)
        if matches:
            self._touch()
        return len(matches)

    def edges(self) -> List[LifeEdge]:
        return list(self._edges.values())

    def get_edge(self, edge_id: str) -> Optional[LifeEdge]:
        return self._edges.get(edge_id)

    def incoming_edges(self, node_id: str) -> List[LifeEdge]:
        if node_id not in self.graph:
            return []
        keys = {key for _, _, key in self.graph.in_edges(node_id, keys=True)}
        return [e for e in self._edges.values() if e.id in keys]

    def outgoing_edges(self, node_id: str) -> List[LifeEdge]:
        if node_id not in self.graph:
            return []
        keys = {key for _, _, key in self.graph.out_edges(node_id, keys=True)}
        return [e for e in self._edges.values() if e.id in keys]

    def has_edge_between(self, source: str, target: str) -> bool:
        return self.graph.has_edge(source, target)

    # =========================================================================
    # Views
    # =========================================================================

    def snapshot(self) -> GraphSnapshot:
        return GraphSnapshot(
            revision=self._revision,
            nodes=self.nodes(),
            edges=self.edges(),
        )

    def check_integrity(self) -> List[str]:
        """Return human-readable consistency problems (empty when consistent)."""
        problems: List[str] = []
        for edge in self._edges.values():
            for endpoint in (edge.source, edge.target):
                if endpoint not in self.graph:
                    problems.append(f"edge {edge.id} references missing node {endpoint}")
        for kind in PROTECTED_KINDS:
            count = len(self._kind_index.get(kind, ()))
            if count > 1:
                problems.append(f"{count} {kind.value} nodes")
        for node in self.nodes(NodeKind.PREDICTION):
            if not node.prediction_group_id:
                problems.append(f"prediction {node.id} has no group")
        return problems

    # =========================================================================
    # Index maintenance
    # =========================================================================

    def _index_node(self, node: LifeNode) -> None:
        self._kind_index[node.kind].add(node.id)
        if node.kind == NodeKind.PREDICTION and node.prediction_group_id:
            self._group_index[node.prediction_group_id].add(node.id)

    def _deindex_node(self, node: LifeNode) -> None:
        self._kind_index.get(node.kind, set()).discard(node.id)
        if node.prediction_group_id:
            members = self._group_index.get(node.prediction_group_id)
            if members is not None:
                members.discard(node.id)
                if not members:
                    del self._group_index[node.prediction_group_id]
