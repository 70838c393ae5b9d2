"""Persona definitions and their file-backed catalogue."""

from anima.persona.catalog import PersonaCatalog
from anima.persona.models import ExampleDialogue, Persona

__all__ = ["ExampleDialogue", "Persona", "PersonaCatalog"]
