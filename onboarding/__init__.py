"""
Onboarding automation backend.

Client onboarding projects move through stages of tasks, file uploads and
e-signatures; template automations react to those events.
"""

__version__ = "1.0.0"
