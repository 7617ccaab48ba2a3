"""
Storyplay - Narrative progression runtime for interactive story players.

Given a story graph of scenes, sections and ordered steps, the runtime:
- Reconstructs the presentation state at any step by folding the step prefix
- Advances through steps on user, renderer and preset-mapped events
- Schedules timed advancement (auto-play, fast-skip, per-step delays)
- Deduplicates and executes side effects requested by actions
"""

__version__ = "0.1.0"
