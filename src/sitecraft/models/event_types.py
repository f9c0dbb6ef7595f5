"""
Event Type Constants

Centralized definitions for all event types used on SiteCraft's event bus.
Every event carries the affected ``project_id`` on the Event itself.
"""

# Generation lifecycle events
GENERATION_STARTED = "GENERATION_STARTED"
"""
Dispatched once a submission has been accepted and the request is issued.

Payload:
    prompt (str): The user's request text
    language (str): Language preference sent to the generation service
"""

STREAM_PROJECTION_UPDATED = "STREAM_PROJECTION_UPDATED"
"""
Dispatched after every processed fragment with the best-effort projection.

Payload:
    prose (str): Human-readable text recovered so far
    files (list): Best-effort file records as dicts (name, language, content)
    fragment_count (int): Number of fragments processed so far
"""

GENERATION_COMMITTED = "GENERATION_COMMITTED"
"""
Dispatched when the authoritative result has been committed.

Payload:
    file_names (list): Names of all files in the committed file set
    history_position (int): History position after the commit
"""

GENERATION_ROLLED_BACK = "GENERATION_ROLLED_BACK"
"""
Dispatched when a generation ended without committing.

Payload:
    reason (str): 'cancelled' or 'failed'
    message (str): The system notice shown to the user
"""

# Project mutation events
HISTORY_CHANGED = "HISTORY_CHANGED"
"""
Dispatched whenever the undo/redo position moves or a new entry is pushed.

Payload:
    position (int): Current history position
    can_undo (bool): Whether an undo is possible
    can_redo (bool): Whether a redo is possible
"""

PROJECT_FILE_EDITED = "PROJECT_FILE_EDITED"
"""
Dispatched after a manual file edit was committed.

Payload:
    name (str): Name of the edited file
"""

# Critique events
CRITIQUE_STARTED = "CRITIQUE_STARTED"
"""
Dispatched when a design critique of the committed files is requested.

Payload:
    language (str): Language preference sent to the generation service
    file_count (int): Number of files sent for review
"""

CRITIQUE_RECORDED = "CRITIQUE_RECORDED"
"""
Dispatched after a critique exchange was appended to the transcript and persisted.

Payload:
    message (str): The model's critique, or the apology shown when it failed
"""
