"""
Pytest fixtures for Storyplay tests.
"""

import pytest
from copy import deepcopy

from ..engine_core.scheduler import ManualTickSource
from ..engine_core.step_manager import StepManager
from ..persistence.store import MemoryStore
from ..session.engine import Engine
from ..story.index import StoryIndex


STORY_DATA = {
    "screen": {"width": 1920, "height": 1080, "backgroundColor": "#000000"},
    "resources": {
        "backgrounds": {
            "bg-room": {"fileId": "room.png"},
            "bg-park": {"fileId": "park.png"},
        },
        "animations": {
            "fade-in": {"properties": {"alpha": {"keyframes": [{"duration": 500, "value": 1}]}}},
        },
        "characters": {
            "alice": {
                "name": "Alice",
                "spriteParts": {"alice-body": {"fileId": "alice-body.png"}},
            },
        },
        "positions": {
            "left": {"x": 200, "y": 1080, "xa": 0, "ya": 1, "anchor": 0.5},
        },
        "visuals": {
            "v-sun": {"fileId": "sun.png"},
        },
    },
    "ui": {
        "screens": {
            "dialogue-box": {"elements": [{"id": "dialogue-text", "type": "text"}]},
            "choice-screen": {"elements": [{"id": "choice-list", "type": "container"}]},
            "settings": {"elements": [{"id": "volume-slider", "type": "slider"}]},
        },
    },
    "variables": {
        "affection": {"default": 0, "persistence": "runtime"},
        "volume": {"default": 50, "persistence": "local"},
    },
    "presets": {
        "read": {
            "eventsMap": {
                "LeftClick": {"actions": {"nextStep": {}}},
                "RightClick": {"actions": {"toggleDialogueUIHidden": {}}},
                "ScrollUp": {"actions": {"prevStep": {}}},
            },
        },
        "title": {
            "eventsMap": {
                "LeftClick": {
                    "actions": {
                        "setRuntimeVariable": {"fromTitle": True},
                        "goToSectionScene": {"sectionId": "park"},
                    },
                },
            },
        },
    },
    "story": {
        "initialSceneId": "scene-intro",
        "initialPresetId": "read",
        "scenes": {
            "scene-intro": {
                "initialSectionId": "intro",
                "sections": {
                    "intro": {
                        "steps": [
                            {
                                "id": "intro-1",
                                "actions": {
                                    "background": {
                                        "backgroundId": "bg-room",
                                        "animations": {"in": "fade-in"},
                                        "inAnimation": "fade-in",
                                    },
                                    "bgm": {"audioId": "theme"},
                                    "dialogue": {
                                        "dialogueBoxId": "dialogue-box",
                                        "characterId": "alice",
                                        "text": "Hello.",
                                    },
                                },
                            },
                            {
                                "id": "intro-2",
                                "actions": {
                                    "dialogue": {"text": "Welcome."},
                                    "sfx": {"audioId": "chime"},
                                },
                            },
                            {
                                "id": "intro-3",
                                "actions": {"dialogue": {"text": "Please wait."}},
                                "autoNext": {"delay": 500, "preventManual": True},
                            },
                            {
                                "id": "intro-4",
                                "actions": {"dialogue": {"text": "Off we go."}},
                            },
                            {
                                "id": "intro-5",
                                "actions": {"goToSectionScene": {"sectionId": "park"}},
                            },
                        ],
                    },
                    "menu": {
                        "steps": [
                            {"id": "menu-1", "actions": {"screen": {"screenId": "settings"}}},
                        ],
                    },
                },
            },
            "scene-park": {
                "initialSectionId": "park",
                "sections": {
                    "park": {
                        "steps": [
                            {
                                "id": "park-1",
                                "actions": {
                                    "background": {"backgroundId": "bg-park"},
                                    "dialogue": {
                                        "dialogueBoxId": "dialogue-box",
                                        "text": "The park.",
                                    },
                                },
                            },
                            {
                                "id": "park-2",
                                "actions": {
                                    "choices": {
                                        "choiceScreenId": "choice-screen",
                                        "items": [
                                            {"id": "c-stay", "content": "Stay"},
                                            {"id": "c-leave", "content": "Leave"},
                                        ],
                                    },
                                },
                            },
                            {
                                "id": "park-3",
                                "actions": {"dialogue": {"text": "The end."}},
                            },
                        ],
                    },
                },
            },
        },
    },
}


@pytest.fixture
def story_data() -> dict:
    """Fresh copy of the two-scene sample story."""
    return deepcopy(STORY_DATA)


@pytest.fixture
def story(story_data) -> StoryIndex:
    return StoryIndex.from_dict(story_data)


@pytest.fixture
def step_manager(story) -> StepManager:
    return StepManager(story)


@pytest.fixture
def ticks() -> ManualTickSource:
    return ManualTickSource()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def engine(story, ticks, store) -> Engine:
    """Engine that has rendered the first step."""
    engine = Engine(story, tick_source=ticks, store=store)
    engine.init()
    yield engine
    engine.close()


@pytest.fixture
def renders(engine) -> list:
    """Render results delivered after the fixture was created."""
    results = []
    engine.on_render(results.append)
    return results
