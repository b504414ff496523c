"""Inkwell: writing progress ledger, goals and leaderboards."""
