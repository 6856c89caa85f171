"""Dependency graph between cells.

Nodes are string keys: cell addresses (``B3``) and named-reference nodes
(``name:rate``). An edge ``B3 -> A1`` means B3's formula reads A1. Both
directions are kept in insertion-ordered dicts, so every traversal is
deterministic and ties in the topological order follow the order in which
edges were added.

All traversals are iterative; sheet size is not bounded by the Python stack.
"""

import logging
from collections import deque
from typing import Dict, Iterable, List, Optional, Set

from unitgrid.formula.formulaast import name_node

logger = logging.getLogger(__name__)


class DependencyGraph:
    """Precedent/dependent adjacency for a sheet."""

    def __init__(self):
        # node -> {node it reads: None}
        self._precedents: Dict[str, Dict[str, None]] = {}
        # node -> {node reading it: None}
        self._dependents: Dict[str, Dict[str, None]] = {}

    # ========================================================================
    # Edits
    # ========================================================================

    def set_references(self, node: str, refs: Iterable[str]) -> None:
        """Replace the outgoing edges of ``node`` with one edge per distinct ref."""
        self._clear_precedents(node)
        targets = dict.fromkeys(refs)
        if targets:
            self._precedents[node] = targets
        for ref in targets:
            self._dependents.setdefault(ref, {})[node] = None

    def define_name(self, name: str, address: Optional[str]) -> str:
        """Point ``name:<name>`` at a cell (or at nothing when ``address`` is None)."""
        node = name_node(name)
        self.set_references(node, [address] if address else [])
        return node

    def remove_cell(self, node: str) -> None:
        """Drop the outgoing edges of a cell; cells reading it keep their edges."""
        self._clear_precedents(node)

    def _clear_precedents(self, node: str) -> None:
        for ref in self._precedents.pop(node, {}):
            users = self._dependents.get(ref)
            if users is None:
                continue
            users.pop(node, None)
            if not users:
                del self._dependents[ref]

    # ========================================================================
    # Queries
    # ========================================================================

    def precedents(self, node: str) -> List[str]:
        return list(self._precedents.get(node, {}))

    def dependents(self, node: str) -> List[str]:
        return list(self._dependents.get(node, {}))

    def nodes(self) -> List[str]:
        """Every node that has a formula edge, in first-seen order."""
        return list(dict.fromkeys(list(self._precedents) + list(self._dependents)))

    def affected_closure(self, node: str) -> List[str]:
        """All transitive dependents of ``node`` in BFS order (``node`` excluded
        unless it depends on itself through a cycle)."""
        seen: Dict[str, None] = {}
        queue = deque(self.dependents(node))
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen[current] = None
            queue.extend(d for d in self.dependents(current) if d not in seen)
        return list(seen)

    def reaches_self(self, node: str) -> bool:
        """True when following dependents from ``node`` leads back to it."""
        seen: Set[str] = set()
        stack = self.dependents(node)
        while stack:
            current = stack.pop()
            if current == node:
                return True
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self.dependents(current))
        return False

    def strongly_connected_cycles(self, nodes: Iterable[str]) -> List[List[str]]:
        """Cyclic strongly connected components among ``nodes`` (Tarjan).

        Only edges between members of ``nodes`` are followed. A component is
        cyclic when it has more than one member or a node reads itself.
        """
        members = list(dict.fromkeys(nodes))
        allowed = set(members)
        index: Dict[str, int] = {}
        lowlink: Dict[str, int] = {}
        on_stack: Set[str] = set()
        stack: List[str] = []
        cycles: List[List[str]] = []
        counter = 0

        for root in members:
            if root in index:
                continue
            work = [(root, iter(self._successors(root, allowed)))]
            index[root] = lowlink[root] = counter
            counter += 1
            stack.append(root)
            on_stack.add(root)
            while work:
                node, successors = work[-1]
                advanced = False
                for succ in successors:
                    if succ not in index:
                        index[succ] = lowlink[succ] = counter
                        counter += 1
                        stack.append(succ)
                        on_stack.add(succ)
                        work.append((succ, iter(self._successors(succ, allowed))))
                        advanced = True
                        break
                    if succ in on_stack:
                        lowlink[node] = min(lowlink[node], index[succ])
                if advanced:
                    continue
                work.pop()
                if work:
                    parent = work[-1][0]
                    lowlink[parent] = min(lowlink[parent], lowlink[node])
                if lowlink[node] == index[node]:
                    component = []
                    while True:
                        member = stack.pop()
                        on_stack.discard(member)
                        component.append(member)
                        if member == node:
                            break
                    if len(component) > 1 or node in self._dependents.get(node, {}):
                        order = {n: i for i, n in enumerate(members)}
                        cycles.append(sorted(component, key=order.__getitem__))
        return cycles

    def _successors(self, node: str, allowed: Set[str]) -> List[str]:
        return [d for d in self.dependents(node) if d in allowed]

    def topological_order(self, nodes: Iterable[str], exclude: Iterable[str] = ()) -> List[str]:
        """Order ``nodes`` so every node comes after the nodes it reads (Kahn).

        Only edges between the given nodes count. Nodes in ``exclude`` are
        left out, and so is anything they make unorderable. Ties follow the
        order of ``nodes``.
        """
        excluded = set(exclude)
        members = [n for n in dict.fromkeys(nodes) if n not in excluded]
        allowed = set(members)
        indegree = {
            n: sum(1 for p in self.precedents(n) if p in allowed and p != n)
            for n in members
        }
        ready = deque(n for n in members if indegree[n] == 0)
        order: List[str] = []
        while ready:
            node = ready.popleft()
            order.append(node)
            for succ in self.dependents(node):
                if succ in allowed and succ != node:
                    indegree[succ] -= 1
                    if indegree[succ] == 0:
                        ready.append(succ)
        if len(order) != len(members):
            logger.debug("Topological order left %d nodes unordered", len(members) - len(order))
        return order


__all__ = [
    "DependencyGraph",
]
