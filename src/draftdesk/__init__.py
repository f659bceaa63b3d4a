"""Consolidate competing agent proposals into one editable working draft."""
