"""Combination column resolution.

A COMBO attribute derives its value from an ordered list of member
attributes of the same data model. Members may themselves be COMBO
attributes, so the members form a directed graph which must stay acyclic:
:meth:`ComboResolver.check_acyclic` is run before any spec is persisted,
and :meth:`ComboResolver.resolve` renders values recursively, memoizing
each sub-combination within one render pass.

Nothing here touches the store. Resolution depends only on the attribute
list and a record's stored values, so it can be repeated freely.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from mdmengine.core.attribute_types import display_value
from mdmengine.errors import CyclicReferenceError, DanglingReferenceError
from mdmengine.models import Attribute, ComboStrategy, Diagnostic

logger = logging.getLogger(__name__)


class ComboResolver:
    """Dependency graph and renderer for the COMBO attributes of one data model."""

    def __init__(self, attributes: Iterable[Attribute]):
        self.attributes: Dict[str, Attribute] = {a.id: a for a in attributes}

    @staticmethod
    def member_ids(attribute: Attribute) -> List[str]:
        if not attribute.is_combo or attribute.combo is None:
            return []
        return [m.attribute_id for m in attribute.combo.members if m.attribute_id]

    def build_graph(self, candidate: Optional[Attribute] = None) -> Dict[str, List[str]]:
        """Map each COMBO attribute id to its member ids.

        ``candidate`` is spliced in, replacing any stored version of itself.
        Plain attributes are leaves and have no entry.
        """
        graph = {
            attr_id: self.member_ids(attr)
            for attr_id, attr in self.attributes.items()
            if attr.is_combo
        }
        if candidate is not None:
            graph.pop(candidate.id, None)
            if candidate.is_combo:
                graph[candidate.id] = self.member_ids(candidate)
        return graph

    def _label(self, attr_id: str, candidate: Optional[Attribute]) -> str:
        if candidate is not None and attr_id == candidate.id:
            return candidate.code
        attr = self.attributes.get(attr_id)
        return attr.code if attr else attr_id

    def check_acyclic(self, candidate: Attribute) -> None:
        """Reject ``candidate`` if it would close a cycle in the member graph.

        Depth-first search from the candidate; reaching a node that is
        already on the current path is a cycle, including a combo that
        lists itself as a member.

        Raises:
            CyclicReferenceError: With the offending path of attribute codes
        """
        graph = self.build_graph(candidate)
        finished: Set[str] = set()
        path: List[str] = []
        on_path: Set[str] = set()

        def visit(node: str) -> None:
            path.append(node)
            on_path.add(node)
            for member in graph.get(node, ()):
                if member in on_path:
                    cycle = path[path.index(member):] + [member]
                    codes = [self._label(n, candidate) for n in cycle]
                    raise CyclicReferenceError(
                        f"Combination column '{candidate.code}' would create a cycle: "
                        f"{' -> '.join(codes)}",
                        attribute=candidate.code,
                        path=codes,
                    )
                if member not in finished:
                    visit(member)
            path.pop()
            on_path.discard(node)
            finished.add(node)

        visit(candidate.id)

    def resolve(
        self,
        attribute: Attribute,
        values: Mapping[str, str],
        memo: Optional[Dict[str, str]] = None,
        diagnostics: Optional[List[Diagnostic]] = None,
        _stack: Optional[Set[str]] = None,
    ) -> str:
        """Render the value of ``attribute`` for one record.

        Args:
            attribute: Attribute to render (plain or COMBO)
            values: The record's stored values keyed by attribute id
            memo: Per render pass cache of resolved values
            diagnostics: Collects dangling member references

        Returns:
            Rendered text; plain attributes without a value render as ""
        """
        memo = {} if memo is None else memo
        diagnostics = [] if diagnostics is None else diagnostics
        _stack = set() if _stack is None else _stack

        if attribute.id in memo:
            return memo[attribute.id]

        if not attribute.is_combo:
            return display_value(attribute, values.get(attribute.id))

        if attribute.id in _stack:
            # Persisted graphs are acyclic; guard against a corrupted store
            logger.warning(f"Cycle through combination column '{attribute.code}' at render time")
            return ""

        _stack.add(attribute.id)
        parts: List[str] = []
        for member in attribute.combo.members:
            target = self.attributes.get(member.attribute_id) if member.attribute_id else None
            if target is None:
                error = DanglingReferenceError(
                    f"Combination column '{attribute.code}' references missing "
                    f"attribute '{member.code or member.attribute_id}'",
                    attribute=attribute.code,
                    member_id=member.attribute_id,
                )
                diagnostics.append(
                    Diagnostic(kind=error.kind, attribute=attribute.code, message=error.message)
                )
                logger.warning(error.message)
                parts.append("")
                continue
            parts.append(self.resolve(target, values, memo, diagnostics, _stack))
        _stack.discard(attribute.id)

        separator = attribute.combo.separator
        if attribute.combo.strategy == ComboStrategy.LEFT_RIGHT and len(parts) == 2:
            left, right = parts
            value = left + separator + right
        else:
            value = separator.join(parts)

        memo[attribute.id] = value
        return value

    def resolve_all(self, values: Mapping[str, str]) -> Tuple[Dict[str, str], List[Diagnostic]]:
        """Render every COMBO attribute for one record.

        Returns:
            Tuple of (COMBO code to rendered value, diagnostics)
        """
        memo: Dict[str, str] = {}
        diagnostics: List[Diagnostic] = []
        derived: Dict[str, str] = {}
        for attr in self.attributes.values():
            if attr.is_combo:
                derived[attr.code] = self.resolve(attr, values, memo, diagnostics)
        return derived, diagnostics
