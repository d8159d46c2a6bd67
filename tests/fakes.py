"""In-memory stand-in for notion_client.AsyncClient used across unit tests."""

from types import SimpleNamespace
from typing import Callable, Optional

from notion_client.errors import APIErrorCode, APIResponseError


def make_api_error(code: APIErrorCode, message: str, status: int = 400) -> APIResponseError:
    """Build an APIResponseError without an HTTP response object."""
    error = APIResponseError.__new__(APIResponseError)
    Exception.__init__(error, message)
    error.code = code
    error.status = status
    return error


def property_missing_error(name: str) -> APIResponseError:
    return make_api_error(APIErrorCode.ValidationError, f"{name} is not a property that exists.")


class FakeNotionClient:
    """
    Records every call and serves block children with cursor pagination.

    Children are stored per parent id; cursors are stringified offsets.
    """

    def __init__(self, children: Optional[dict[str, list[dict]]] = None):
        self.calls: list[tuple[str, dict]] = []
        self.children = {k: list(v) for k, v in (children or {}).items()}
        self._failures: list[tuple[str, Optional[Callable[[dict], bool]], Exception]] = []
        self._next_id = 0

        self.pages = SimpleNamespace(update=self._endpoint("pages.update", self._update_page))
        self.blocks = SimpleNamespace(
            delete=self._endpoint("blocks.delete", self._delete_block),
            children=SimpleNamespace(
                list=self._endpoint("blocks.children.list", self._list_children),
                append=self._endpoint("blocks.children.append", self._append_children),
            ),
        )

    def fail(self, method: str, error: Exception, when: Optional[Callable[[dict], bool]] = None) -> None:
        """Make every matching call to method raise error."""
        self._failures.append((method, when, error))

    def calls_to(self, method: str) -> list[dict]:
        return [kwargs for name, kwargs in self.calls if name == method]

    def _endpoint(self, name: str, handler: Callable[..., dict]):
        async def call(**kwargs):
            self.calls.append((name, kwargs))
            for method, when, error in self._failures:
                if method == name and (when is None or when(kwargs)):
                    raise error
            return handler(**kwargs)

        return call

    def _update_page(self, page_id: str, properties: dict) -> dict:
        return {"object": "page", "id": page_id}

    def _list_children(self, block_id: str, page_size: int = 100, start_cursor: Optional[str] = None) -> dict:
        items = self.children.get(block_id, [])
        start = int(start_cursor) if start_cursor else 0
        end = start + page_size
        has_more = end < len(items)
        return {
            "object": "list",
            "results": items[start:end],
            "has_more": has_more,
            "next_cursor": str(end) if has_more else None,
        }

    def _delete_block(self, block_id: str) -> dict:
        for items in self.children.values():
            items[:] = [b for b in items if b["id"] != block_id]
        return {"object": "block", "id": block_id, "archived": True}

    def _append_children(self, block_id: str, children: list[dict]) -> dict:
        created = []
        for child in children:
            self._next_id += 1
            created.append({**child, "id": f"new-{self._next_id}"})
        self.children.setdefault(block_id, []).extend(created)
        return {"object": "list", "results": created}


def describe(call: tuple[str, dict]) -> str:
    """Short label for a recorded call, e.g. "Sync status=Synced"."""
    name, kwargs = call
    if name != "pages.update":
        return name

    prop_name, prop = next(iter(kwargs["properties"].items()))
    prop_type = prop["type"]
    if prop_type == "status":
        value = prop["status"]["name"]
    elif prop_type == "url":
        value = prop["url"]
    else:
        value = prop[prop_type][0]["text"]["content"]
    return f"{prop_name}={value}"
