"""Code Tutor backend: REST API for users, chat history, code analyses and avatars."""

__version__ = "1.0.0"
