# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Custom Typer helpers for consistent, sorted CLI help output."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, Final, TypeVar

import typer
from click.core import Context, Parameter
from click.formatting import HelpFormatter
from typer.core import TyperCommand, TyperGroup

ARGUMENT_PARAM_TYPE: Final[str] = "argument"

CommandCallback = TypeVar("CommandCallback", bound=Callable[..., Any])


def _primary_option_name(param: Parameter) -> str:
    """Return the canonical name used for sorting a Click parameter.

    Args:
        param: Click parameter being inspected.

    Returns:
        str: Normalised option name (without leading dashes) for sorting.
    """

    option_names: Iterable[str] = tuple(getattr(param, "opts", ())) + tuple(getattr(param, "secondary_opts", ()))
    long_names = [name for name in option_names if name.startswith("--")]
    chosen = long_names[0] if long_names else next(iter(option_names), param.name or "")
    return chosen.lstrip("-").lower()


class SortedTyperCommand(TyperCommand):
    """Typer command that renders options in sorted order within help output."""

    def format_options(self, ctx: Context, formatter: HelpFormatter) -> None:
        argument_records: list[tuple[str, str]] = []
        option_entries: list[tuple[tuple[str, int], tuple[str, str]]] = []

        for index, param in enumerate(self.get_params(ctx)):
            record = param.get_help_record(ctx)
            if record is None:
                continue
            if getattr(param, "param_type_name", "") == ARGUMENT_PARAM_TYPE:
                argument_records.append(record)
                continue
            option_entries.append(((_primary_option_name(param), index), record))

        if argument_records:
            with formatter.section("Arguments"):
                formatter.write_dl(argument_records)

        if option_entries:
            sorted_records = [entry for _, entry in sorted(option_entries, key=lambda item: item[0])]
            with formatter.section("Options"):
                formatter.write_dl(sorted_records)


class SortedTyperGroup(TyperGroup):
    """Typer group that defaults to using :class:`SortedTyperCommand`."""

    command_class = SortedTyperCommand

    def list_commands(self, ctx: Context) -> list[str]:
        return sorted(super().list_commands(ctx))


class SortedTyper(typer.Typer):
    """Typer application that emits sorted command and option listings."""

    def __init__(self, *args: Any, cls: type[TyperGroup] | None = None, **kwargs: Any) -> None:
        super().__init__(*args, cls=cls or SortedTyperGroup, **kwargs)

    def command(
        self,
        name: str | None = None,
        *,
        cls: type[TyperCommand] | None = None,
        **kwargs: Any,
    ) -> Callable[[CommandCallback], CommandCallback]:
        """Return a decorator registering commands with sorted help output.

        Args:
            name: Optional explicit command name.
            cls: Command class to instantiate; defaults to
                :class:`SortedTyperCommand` when ``None``.
            **kwargs: Keyword arguments forwarded to :meth:`typer.Typer.command`.

        Returns:
            Callable[[CommandCallback], CommandCallback]: Registration decorator.
        """

        return super().command(name, cls=cls or SortedTyperCommand, **kwargs)


def create_typer(*, cls: type[TyperGroup] | None = None, **kwargs: Any) -> SortedTyper:
    """Return a :class:`SortedTyper` configured to emit sorted help listings."""

    return SortedTyper(cls=cls, **kwargs)


__all__ = ["SortedTyper", "SortedTyperCommand", "SortedTyperGroup", "create_typer"]
