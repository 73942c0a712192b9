"""
Actions layer - Operations on a single collection.

All handlers are CLI-agnostic and return typed results.
They can be called directly from Python code without going through the CLI.
"""

from .add import AddAction, NotesAction
from .base import ActionEnvironment, ActionHandler, ActionResult, resolve_parameters
from .create import CreateResult, create_collection
from .dispatcher import ActionDispatcher
from .format import FormatAction
from .update import update_collection

__all__ = [
    "ActionDispatcher",
    "ActionEnvironment",
    "ActionHandler",
    "ActionResult",
    "AddAction",
    "NotesAction",
    "FormatAction",
    "CreateResult",
    "create_collection",
    "update_collection",
    "resolve_parameters",
]
