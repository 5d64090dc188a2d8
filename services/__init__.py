"""Gemini-backed text generation for the KeliLink API."""
