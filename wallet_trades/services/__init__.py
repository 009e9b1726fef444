"""Services implementing the trade analysis pipeline."""
