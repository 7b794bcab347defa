"""
Recalculation

Keeps display values in step with the cells they read. Two strategies:

- recalculate(): one full pass over every formula cell against a single
  snapshot, the way the grid refreshes after any edit.
- recalculate_dependents(): only the cells downstream of an edit, in
  dependency order, so chains settle in one pass.

Neither mutates the store it is given. Circular references are not an
error: each cell on a cycle is evaluated once against whatever its inputs
last displayed.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional, Set

from .cells import CellData
from .formula_engine import EvaluationContext, evaluate_formula, extract_references
from .references import sort_cell_keys

logger = logging.getLogger(__name__)


class DependencyGraph:
    """Which formula cells read which cells."""

    def __init__(self):
        self.graph: Dict[str, Set[str]] = defaultdict(set)
        self.reverse_graph: Dict[str, Set[str]] = defaultdict(set)
        self.all_nodes: Set[str] = set()
        self._cycle: Optional[List[str]] = None
        self._cycle_checked = False

    @classmethod
    def from_cells(cls, cells: Mapping[str, CellData]) -> 'DependencyGraph':
        """Build the graph from every formula in a cell store."""
        dep_graph = cls()
        for cell_id, cell in cells.items():
            if not cell.formula:
                continue
            dep_graph.all_nodes.add(cell_id)
            for ref in extract_references(cell.formula):
                dep_graph.add_dependency(cell_id, ref)
        return dep_graph

    def add_dependency(self, cell_id: str, depends_on: str):
        """Add a dependency: cell_id reads depends_on."""
        self.graph[cell_id].add(depends_on)
        self.reverse_graph[depends_on].add(cell_id)
        self.all_nodes.add(cell_id)
        self.all_nodes.add(depends_on)
        self._cycle_checked = False

    def dependents_of(self, cell_id: str) -> Set[str]:
        """All cells that read cell_id, directly or through other cells."""
        seen: Set[str] = set()
        stack = [cell_id]
        while stack:
            node = stack.pop()
            for dependent in self.reverse_graph.get(node, ()):
                if dependent not in seen:
                    seen.add(dependent)
                    stack.append(dependent)
        return seen

    def detect_circular_references(self) -> Optional[List[str]]:
        """Detect circular references using DFS; returns one cycle path or None.

        The result is cached until the next add_dependency().
        """
        if not self._cycle_checked:
            self._cycle = self._find_cycle()
            self._cycle_checked = True
        return self._cycle

    def _find_cycle(self) -> Optional[List[str]]:
        WHITE, GRAY, BLACK = 0, 1, 2
        color = {node: WHITE for node in self.all_nodes}

        for start in sort_cell_keys(self.all_nodes):
            if color[start] != WHITE:
                continue

            # explicit stack; reference chains can be thousands of cells deep
            color[start] = GRAY
            path = [start]
            stack = [iter(sorted(self.graph.get(start, ())))]
            while stack:
                for neighbor in stack[-1]:
                    state = color.get(neighbor, WHITE)
                    if state == GRAY:
                        return path[path.index(neighbor):] + [neighbor]
                    if state == WHITE:
                        color[neighbor] = GRAY
                        path.append(neighbor)
                        stack.append(iter(sorted(self.graph.get(neighbor, ()))))
                        break
                else:
                    color[path.pop()] = BLACK
                    stack.pop()
        return None

    def evaluation_order(self, cell_ids: Iterable[str]) -> List[str]:
        """Topological order of cell_ids: inputs before the cells that read them.

        Cells stuck on a cycle are appended once, in grid order.
        """
        pending = set(cell_ids)
        in_degree = {
            node: len(self.graph.get(node, set()) & pending)
            for node in pending
        }

        queue = sort_cell_keys(node for node in pending if in_degree[node] == 0)
        result = []

        while queue:
            node = queue.pop(0)
            result.append(node)
            for dependent in sort_cell_keys(self.reverse_graph.get(node, ())):
                if dependent in in_degree and dependent != node:
                    in_degree[dependent] -= 1
                    if in_degree[dependent] == 0:
                        queue.append(dependent)

        ordered = set(result)
        stuck = sort_cell_keys(node for node in pending if node not in ordered)
        return result + stuck


def recalculate(cells: Mapping[str, CellData],
                context: Optional[EvaluationContext] = None) -> Dict[str, str]:
    """
    Re-evaluate every formula cell once against the current snapshot.

    Returns {cell_id: display_value} for the cells whose display value
    changed; the caller writes them back.
    """
    changes = {}
    for cell_id, cell in cells.items():
        if not cell.formula:
            continue
        display_value = evaluate_formula(cell.formula, cell_id, cells, context)
        if cell.display_value != display_value:
            changes[cell_id] = display_value
    return changes


def cells_to_recalculate(edited_cell_id: str, cells: Mapping[str, CellData],
                         dep_graph: Optional[DependencyGraph] = None) -> List[str]:
    """Formula cells that must be re-evaluated after edited_cell_id changes, in order."""
    if dep_graph is None:
        dep_graph = DependencyGraph.from_cells(cells)
    return _affected_in_order(dep_graph, edited_cell_id, cells)


def _affected_in_order(dep_graph: DependencyGraph, edited_cell_id: str,
                       cells: Mapping[str, CellData]) -> List[str]:
    affected = dep_graph.dependents_of(edited_cell_id)
    if edited_cell_id in cells and cells[edited_cell_id].formula:
        affected.add(edited_cell_id)
    return dep_graph.evaluation_order(affected)


def recalculate_dependents(edited_cell_id: str, cells: Mapping[str, CellData],
                           context: Optional[EvaluationContext] = None,
                           dep_graph: Optional[DependencyGraph] = None) -> Dict[str, str]:
    """
    Re-evaluate the edited cell and everything downstream of it.

    Cells are evaluated in dependency order on a working copy, so each one
    sees the fresh values of its inputs. Returns the changed display values.
    A prebuilt dep_graph for the same cells may be passed in.
    """
    if dep_graph is None:
        dep_graph = DependencyGraph.from_cells(cells)
    cycle = dep_graph.detect_circular_references()
    if cycle:
        logger.warning("Circular reference: %s", ' → '.join(cycle))

    working = dict(cells)
    changes = {}
    for cell_id in _affected_in_order(dep_graph, edited_cell_id, cells):
        cell = working[cell_id]
        display_value = evaluate_formula(cell.formula, cell_id, working, context)
        if cell.display_value != display_value:
            working[cell_id] = CellData(cell.value, cell.formula, display_value)
            changes[cell_id] = display_value
    return changes


def apply_edit(cells: Mapping[str, CellData], cell_id: str, raw: str,
               context: Optional[EvaluationContext] = None) -> Dict[str, CellData]:
    """Return a new store with raw content typed into cell_id and dependents refreshed."""
    cell_id = cell_id.upper()
    updated = dict(cells)
    updated[cell_id] = CellData.from_input(raw)

    for changed_id, display_value in recalculate_dependents(cell_id, updated, context).items():
        cell = updated[changed_id]
        updated[changed_id] = CellData(cell.value, cell.formula, display_value)
    return updated
