"""Project reconciliation -- schemas, store, host strategies and workflow.

Turns closed-won deal events into projects on the configured host and
keeps a local JSON record of every project created.
"""
