"""
API Routers for the Code Tutor backend.

Each router handles a specific domain:
- auth: Registration, login and current user
- users: Profile, password, account and per-user statistics
- chat: Per-user chat log
- code_analysis: Stored code analysis results and their summary
- uploads: Avatar upload and serving
"""

from . import auth, users, chat, code_analysis, uploads
