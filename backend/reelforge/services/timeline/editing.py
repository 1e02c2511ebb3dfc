"""
Manual timeline edits

Every helper returns a new Timeline with dense ordering and durations kept
consistent with the edited spans. Hand edits are allowed to break
contiguity; the assembler renders each scene for its own duration.
"""

import uuid
from typing import Optional, Sequence

from ...config import PENDING_IMAGE_PROMPT
from ...core import SceneNotFoundError
from ...models import Timeline, TimelineScene


def replace_scenes(timeline: Optional[Timeline], scenes: Sequence[TimelineScene]) -> Timeline:
    base = timeline or Timeline()
    return base.with_scenes(list(scenes))


def new_scene(**fields) -> TimelineScene:
    """A blank scene with a fresh id, used when the caller supplies nothing."""
    defaults = {
        "id": str(uuid.uuid4()),
        "scene_text": "New scene",
        "scene_description": "",
        "image_prompt": PENDING_IMAGE_PROMPT,
        "duration": 3.0,
    }
    defaults.update({k: v for k, v in fields.items() if v is not None})
    return TimelineScene(**defaults)


def insert_scene(
    timeline: Optional[Timeline],
    scene: Optional[TimelineScene] = None,
    after_scene_id: Optional[str] = None,
) -> Timeline:
    """Insert a scene after `after_scene_id`, or append when it is None.

    A scene id already used in the timeline is replaced by a fresh one.

    Raises:
        SceneNotFoundError: If after_scene_id does not exist
    """
    base = timeline or Timeline()
    scenes = list(base.scenes)

    scene = scene or new_scene()
    if base.find_scene(scene.id) is not None:
        scene = scene.with_changes(id=str(uuid.uuid4()))

    if after_scene_id is None:
        scenes.append(scene)
    else:
        index = next((i for i, s in enumerate(scenes) if s.id == after_scene_id), None)
        if index is None:
            raise SceneNotFoundError(after_scene_id)
        scenes.insert(index + 1, scene)

    return base.with_scenes(scenes)


def remove_scene(timeline: Optional[Timeline], scene_id: str) -> Timeline:
    """Remove a scene by id.

    Raises:
        SceneNotFoundError: If the scene does not exist
    """
    if timeline is None or timeline.find_scene(scene_id) is None:
        raise SceneNotFoundError(scene_id)
    return timeline.with_scenes([s for s in timeline.scenes if s.id != scene_id])
