"""Workflow bookkeeping: stages, form submissions and page migration logs."""
