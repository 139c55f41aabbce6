"""Request schemas for the board API."""

from .cards import CardCreate, CardPatch, CommentCreate

__all__ = ["CardCreate", "CardPatch", "CommentCreate"]
