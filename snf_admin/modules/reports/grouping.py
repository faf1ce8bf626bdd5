"""Grouped report trees: group/flat detection, parsing and flattening into table rows."""

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel

from snf_admin.modules.reports.schemas import GroupedNode, TableRow


def _has(obj: Any, name: str) -> bool:
    if isinstance(obj, Mapping):
        return name in obj
    return getattr(obj, name, None) is not None


def is_grouped_data(data: list[Any] | None) -> bool:
    """True when the first element is a group node (carries `level` and `totals`); [] is never grouped."""
    if not data:
        return False
    first = data[0]
    return _has(first, "level") and _has(first, "totals")


def parse_report_tree(raw: list[Any], leaf_model: type[BaseModel]) -> list[Any]:
    """
    Turn backend JSON into GroupedNode / leaf models, preserving order.

    Children of a node are parsed the same way, so mixed depths are fine
    as long as every `data` list is homogeneous.
    """
    if not is_grouped_data(raw):
        return [leaf_model.model_validate(row) for row in raw]
    nodes = []
    for entry in raw:
        node = GroupedNode.model_validate({**entry, "data": []})
        node.data = parse_report_tree(entry.get("data") or [], leaf_model)
        nodes.append(node)
    return nodes


def group_id(node: GroupedNode) -> str:
    return f"{node.level}-{node.id}"


class ExpansionState:
    """Set of expanded group ids; toggling one id never touches its siblings."""

    def __init__(self, expanded: Iterable[str] = ()) -> None:
        self._expanded: set[str] = set(expanded)

    def toggle(self, gid: str) -> None:
        if gid in self._expanded:
            self._expanded.remove(gid)
        else:
            self._expanded.add(gid)

    def is_expanded(self, gid: str) -> bool:
        return gid in self._expanded

    def ids(self) -> list[str]:
        return sorted(self._expanded)


def group_label(node: GroupedNode) -> str:
    """Display label for a group row."""
    level = node.level
    if level == "farmer":
        return f"Farmer: {node.name}"
    if level == "depot":
        return f"Depot: {node.name}" + (f" ({node.location})" if node.location else "")
    if level == "variant":
        label = f"{node.product_name} - {node.name}" if node.product_name else node.name
        return label + (f" ({node.unit})" if node.unit else "")
    if level == "agency":
        return f"Delivery Agent: {node.name}"
    if level == "area":
        return f"Area: {node.name}" + (f" ({node.city})" if node.city else "")
    if level == "status":
        return f"Status: {node.name}"
    return node.name


def flatten_tree(
    data: list[Any],
    expanded: ExpansionState,
    depth: int = 0,
) -> list[TableRow]:
    """
    Render a grouped (or flat) report as ordered table rows.

    Group rows precede their children; children appear only when the group
    is expanded. Input order is kept as received.
    """
    if not is_grouped_data(data):
        return [TableRow(kind="item", depth=depth, item=item) for item in data]

    rows: list[TableRow] = []
    for node in data:
        gid = group_id(node)
        is_open = expanded.is_expanded(gid)
        rows.append(
            TableRow(
                kind="group",
                depth=depth,
                group_id=gid,
                level=node.level,
                label=group_label(node),
                expanded=is_open,
                totals=node.totals,
            )
        )
        if is_open:
            rows.extend(flatten_tree(node.data, expanded, depth + 1))
    return rows


def collect_group_ids(data: list[Any]) -> list[str]:
    """All group ids in the tree, depth first (used for 'expand all')."""
    if not is_grouped_data(data):
        return []
    ids: list[str] = []
    for node in data:
        ids.append(group_id(node))
        ids.extend(collect_group_ids(node.data))
    return ids
