"""Rule evaluation, template resolution, history and undo engines."""
