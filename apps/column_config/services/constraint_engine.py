"""
apps.column_config.services.constraint_engine
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Derived-value rules run on every option mutation before it is committed.

Rules (evaluated in this exact order):

    R1. ``baseOptions.required`` set to ``True``  →  ``nullable = False``.
    R2. ``baseOptions.nullable`` set to ``True``  →  ``required = False`` and,
        when ``nullValues`` is empty, ``nullValues = [""]``.

A rule fires only for the path it references and only when the new value is
truthy.  Setting either flag to ``False`` fires nothing, so the rules can
never trigger each other.

The physical-nullability flag (``dataSourceInfo.nullable``) is
*not* enforced here; a change-set asking for a nullable column on a
non-nullable source is rejected by
:class:`~apps.column_config.services.change_set_validator.ChangeSetValidationService`
at save time.

Public API
----------
ConstraintEngine.apply(column, changed_path, new_value) -> Column
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable

from .column_model import Column


@dataclass(frozen=True)
class Rule:
    """
    One derived-value rule.

    Attributes:
        name: Short identifier used in docs and tests (``"R1"``).
        trigger: The option path whose mutation may fire the rule.
        effect: Pure function returning the normalised column.
    """

    name: str
    trigger: str
    effect: Callable[[Column], Column]

    def fires(self, changed_path: str, new_value: Any) -> bool:
        return changed_path == self.trigger and new_value is True


def _required_clears_nullable(column: Column) -> Column:
    return replace(column, base_options=replace(column.base_options, nullable=False))


def _nullable_clears_required(column: Column) -> Column:
    options = replace(column.base_options, required=False)
    if not options.null_values:
        options = replace(options, null_values=("",))
    return replace(column, base_options=options)


#: The rule graph, in evaluation order.
RULES: tuple[Rule, ...] = (
    Rule("R1", "baseOptions.required", _required_clears_nullable),
    Rule("R2", "baseOptions.nullable", _nullable_clears_required),
)


class ConstraintEngine:
    """
    Stateless normaliser applied by
    :meth:`~apps.column_config.services.column_store.ColumnStore.mutate`.

    Example::

        proposed = with_option(column, "baseOptions.nullable", True)
        column = ConstraintEngine.apply(proposed, "baseOptions.nullable", True)
        # column.base_options.required is False
        # column.base_options.null_values == ("",)
    """

    @staticmethod
    def apply(column: Column, changed_path: str, new_value: Any) -> Column:
        """
        Return the consistent column that follows from setting
        *changed_path* to *new_value* on *column*.

        Args:
            column: The proposed column, with the change already applied
                by :func:`~apps.column_config.services.column_model.with_option`.
            changed_path: The option path that was changed.
            new_value: The value it was set to.

        Returns:
            *column* itself when no rule fires, otherwise a new Column.
        """
        for rule in RULES:
            if rule.fires(changed_path, new_value):
                column = rule.effect(column)
        return column
