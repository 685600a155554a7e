"""Dict-returning entry points over NoteVault."""

from notevault.tools.notes import deposit_tool, note_status_tool, vault_status_tool, withdraw_tool

__all__ = ["deposit_tool", "note_status_tool", "vault_status_tool", "withdraw_tool"]
