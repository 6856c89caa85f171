"""Cell storage.

The engine only talks to storage through the small CellStore protocol, so a
host application can keep cells wherever it likes. InMemoryCellStore is the
reference implementation used by the Workbook and the tests.
"""

from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Protocol

from unitgrid.formula.formulaast import name_node, normalize_address
from unitgrid.formula.formulavalue import EMPTY, CellValue
from unitgrid.units.unitalgebra import DIMENSIONLESS_UNIT, CompoundUnit


@dataclass(frozen=True)
class Cell:
    """One cell of a sheet.

    ``formula`` and ``storage_unit`` change together on edit; ``display_unit``
    only changes when the display mode is toggled.
    """

    value: CellValue = EMPTY
    formula: Optional[str] = None
    storage_unit: CompoundUnit = DIMENSIONLESS_UNIT
    display_unit: Optional[CompoundUnit] = None
    warning: Optional[str] = None
    label: Optional[str] = None

    @property
    def is_formula(self) -> bool:
        return self.formula is not None


EMPTY_CELL = Cell()


class CellStore(Protocol):
    def cell(self, address: str) -> Cell:
        ...

    def formula_addresses(self) -> List[str]:
        ...

    def resolve_name(self, name: str) -> Optional[str]:
        ...

    def names(self) -> List[str]:
        ...

    def get(self, address: str) -> CellValue:
        ...

    def set_computed(self, address: str, value: CellValue, warning: Optional[str] = None) -> None:
        ...

    def enumerate_dependents_seed(self, address: str) -> Iterable[str]:
        """Nodes to start from when ``address`` changes (the cell and names pointing at it)."""
        ...


class InMemoryCellStore:
    """Dict-backed CellStore with a table of named references."""

    def __init__(self):
        self._cells: Dict[str, Cell] = {}
        self._names: Dict[str, str] = {}

    # ------------------------------------------------------------------ cells

    def cell(self, address: str) -> Cell:
        return self._cells.get(normalize_address(address), EMPTY_CELL)

    def put(self, address: str, cell: Cell) -> None:
        address = normalize_address(address)
        if cell == EMPTY_CELL:
            self._cells.pop(address, None)
        else:
            self._cells[address] = cell

    def get(self, address: str) -> CellValue:
        return self.cell(address).value

    def set_computed(self, address: str, value: CellValue, warning: Optional[str] = None) -> None:
        address = normalize_address(address)
        current = self._cells.get(address, EMPTY_CELL)
        storage_unit = getattr(value, "unit", current.storage_unit)
        self._cells[address] = replace(current, value=value, storage_unit=storage_unit, warning=warning)

    def enumerate_dependents_seed(self, address: str) -> List[str]:
        address = normalize_address(address)
        return [address] + [name_node(n) for n, target in self._names.items() if target == address]

    def addresses(self) -> List[str]:
        return list(self._cells)

    def formula_addresses(self) -> List[str]:
        return [a for a, c in self._cells.items() if c.is_formula]

    # ------------------------------------------------------------------ names

    def define_name(self, name: str, address: str) -> None:
        self._names[name] = normalize_address(address)

    def remove_name(self, name: str) -> None:
        self._names.pop(name, None)

    def resolve_name(self, name: str) -> Optional[str]:
        return self._names.get(name)

    def names(self) -> List[str]:
        return list(self._names)

    def __len__(self) -> int:
        return len(self._cells)


__all__ = [
    "Cell",
    "EMPTY_CELL",
    "CellStore",
    "InMemoryCellStore",
]
