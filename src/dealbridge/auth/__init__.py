"""Credential acquisition for the Basecamp project host."""
