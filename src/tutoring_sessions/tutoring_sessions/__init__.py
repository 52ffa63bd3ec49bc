"""Tutoring Sessions package.

Feature modules (tokens, checkin, sessions, notifications) keep business rules
in service/repository layers; Flask controllers stay thin.
"""
