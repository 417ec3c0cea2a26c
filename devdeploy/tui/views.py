"""Cursor and filter models for the two screens.

These hold no I/O; the renderer reads them and the dispatcher forwards
keys they own.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from devdeploy.project.models import BeadInfo, ProjectSummary, Resource

UP_KEYS = ("k", "up")
DOWN_KEYS = ("j", "down")
TOP_KEYS = ("g", "home")
BOTTOM_KEYS = ("G", "end")


def _clamp(index: int, length: int) -> int:
    if length <= 0:
        return 0
    return max(0, min(index, length - 1))


@dataclass
class DashboardView:
    projects: list[ProjectSummary] = field(default_factory=list)
    selected: int = 0

    def set_projects(self, projects: list[ProjectSummary], *, keep_selection: bool = True) -> None:
        """Replace the whole list; keep the selected index when still in range."""
        previous = self.selected
        self.projects = list(projects)
        if keep_selection and previous < len(self.projects):
            self.selected = previous
        else:
            self.selected = 0

    def selected_project(self) -> ProjectSummary | None:
        if 0 <= self.selected < len(self.projects):
            return self.projects[self.selected]
        return None

    def handle_key(self, key: str) -> bool:
        n = len(self.projects)
        if key in DOWN_KEYS:
            self.selected = _clamp(self.selected + 1, n)
        elif key in UP_KEYS:
            self.selected = _clamp(self.selected - 1, n)
        elif key in TOP_KEYS:
            self.selected = 0
        elif key in BOTTOM_KEYS:
            self.selected = _clamp(n - 1, n)
        else:
            return False
        return True


@dataclass(frozen=True)
class DetailItem:
    """One visible row: a resource, or one of its beads."""

    resource_index: int
    bead_index: int | None = None

    @property
    def is_bead(self) -> bool:
        return self.bead_index is not None


@dataclass
class DetailView:
    """Flat list of resources, each followed by its beads, with a text filter."""

    resources: list[Resource] = field(default_factory=list)
    cursor: int = 0
    filter_text: str = ""
    filtering: bool = False
    width: int = 0
    height: int = 0
    items: list[DetailItem] = field(default_factory=list)

    def set_resources(self, resources: list[Resource]) -> None:
        self.resources = resources
        self.rebuild()

    def rebuild(self) -> None:
        """Recompute visible rows; keep the cursor on the same resource when possible."""
        previous = self.items[self.cursor] if 0 <= self.cursor < len(self.items) else None
        needle = self.filter_text.lower()
        items: list[DetailItem] = []
        for ri, resource in enumerate(self.resources):
            bead_rows = [
                DetailItem(ri, bi) for bi, bead in enumerate(resource.beads) if _bead_matches(bead, needle)
            ]
            if not needle or _resource_matches(resource, needle) or bead_rows:
                items.append(DetailItem(ri))
                items.extend(bead_rows)
        self.items = items
        if previous is not None and previous in items:
            self.cursor = items.index(previous)
        else:
            self.cursor = _clamp(self.cursor, len(items))

    def is_filtering(self) -> bool:
        return self.filtering

    def selected_item(self) -> DetailItem | None:
        if 0 <= self.cursor < len(self.items):
            return self.items[self.cursor]
        return None

    def selected_resource(self) -> Resource | None:
        item = self.selected_item()
        if item is None or item.resource_index >= len(self.resources):
            return None
        return self.resources[item.resource_index]

    def selected_bead(self) -> BeadInfo | None:
        item = self.selected_item()
        resource = self.selected_resource()
        if item is None or resource is None or item.bead_index is None:
            return None
        if item.bead_index >= len(resource.beads):
            return None
        return resource.beads[item.bead_index]

    def resize(self, width: int, height: int) -> None:
        self.width = width
        self.height = height

    def handle_key(self, key: str, character: str | None = None) -> bool:
        """Apply a key the view owns; returns False when the key is not for the view."""
        if self.filtering:
            return self._handle_filter_key(key, character)
        n = len(self.items)
        if key in DOWN_KEYS:
            self.cursor = _clamp(self.cursor + 1, n)
        elif key in UP_KEYS:
            self.cursor = _clamp(self.cursor - 1, n)
        elif key in TOP_KEYS:
            self.cursor = 0
        elif key in BOTTOM_KEYS:
            self.cursor = _clamp(n - 1, n)
        elif key == "/":
            self.filtering = True
            self.filter_text = ""
            self.rebuild()
        else:
            return False
        return True

    def _handle_filter_key(self, key: str, character: str | None) -> bool:
        if key == "esc":
            self.filtering = False
            self.filter_text = ""
        elif key == "enter":
            self.filtering = False
        elif key == "backspace":
            self.filter_text = self.filter_text[:-1]
        elif key == "SPC":
            self.filter_text += " "
        elif character and character.isprintable() and len(character) == 1:
            self.filter_text += character
        else:
            return True
        self.rebuild()
        return True


def _resource_matches(resource: Resource, needle: str) -> bool:
    haystack = resource.repo_name
    if resource.pr is not None:
        haystack += f" #{resource.pr.number} {resource.pr.title}"
    return needle in haystack.lower()


def _bead_matches(bead: BeadInfo, needle: str) -> bool:
    return not needle or needle in f"{bead.id} {bead.title}".lower()
