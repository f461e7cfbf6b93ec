"""Parsers for extracting data from the agenda page."""

from .agenda_parser import AgendaParser

__all__ = ["AgendaParser"]
