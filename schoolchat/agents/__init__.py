"""
SchoolChat Agents Module

The stages of an analysis run.

Available Agents:
    - SqlGenerator: Natural language to candidate SQL
    - SqlValidator: Read-only, injection and syntax checks
    - QueryDecomposer: SELECT text to table/select-list/clauses
    - QueryExecutor: Local MySQL or remote query proxy execution
    - SummaryBuilder: Narrated summaries, comparisons and trends

Usage:
    from schoolchat.agents import SqlValidator

    result = SqlValidator().validate("SELECT * FROM schools")
"""

from schoolchat.agents.decomposer import QueryDecomposer
from schoolchat.agents.executor import QueryExecutor
from schoolchat.agents.sql import SqlGenerator
from schoolchat.agents.summary import SummaryBuilder
from schoolchat.agents.validator import SqlValidator

__all__ = [
    "QueryDecomposer",
    "QueryExecutor",
    "SqlGenerator",
    "SqlValidator",
    "SummaryBuilder",
]
