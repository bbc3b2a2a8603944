"""
Database module for chat graph persistence.
"""

from db.chat_db import ChatStore

__all__ = ['ChatStore']
