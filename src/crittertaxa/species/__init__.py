"""Helpers for free-text species names as found in dive logs."""
