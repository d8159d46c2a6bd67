"""
Markdown to Notion block converter.

Parses Markdown with mistune and turns its AST into Notion block payloads
ready for blocks.children.append. Handles:
- Text blocks (paragraphs, headings, quotes)
- Lists (bulleted, numbered, to-do), nested
- Code blocks (with language mapping)
- Tables, dividers and images by URL
- Inline bold, italic, strikethrough, code and links

Each top-level Markdown construct becomes exactly one payload (or none),
so a payload list can be chunked at any boundary.
"""

from typing import Any, Callable, Optional

import mistune

# Notion's limit per rich text object
MAX_TEXT_LENGTH = 2000

# Levels of block nesting Notion accepts in one append request
MAX_NESTING_DEPTH = 2

NOTION_CODE_LANGUAGES = {
    "bash", "c", "c#", "c++", "clojure", "css", "dart", "diff", "docker",
    "elixir", "erlang", "go", "graphql", "groovy", "haskell", "html", "java",
    "javascript", "json", "kotlin", "latex", "lua", "makefile", "markdown",
    "mermaid", "nix", "objective-c", "perl", "php", "plain text", "powershell",
    "protobuf", "python", "r", "ruby", "rust", "scala", "scss", "shell", "sql",
    "swift", "toml", "typescript", "xml", "yaml",
}

LANGUAGE_ALIASES = {
    "sh": "shell",
    "zsh": "shell",
    "console": "shell",
    "js": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "py": "python",
    "rb": "ruby",
    "rs": "rust",
    "yml": "yaml",
    "md": "markdown",
    "cpp": "c++",
    "csharp": "c#",
    "cs": "c#",
    "dockerfile": "docker",
    "text": "plain text",
    "txt": "plain text",
}

Block = dict[str, Any]
RichText = list[dict[str, Any]]


def _text_run(content: str, annotations: Optional[dict] = None, link: Optional[str] = None) -> dict:
    run: dict[str, Any] = {"type": "text", "text": {"content": content}}
    if link:
        run["text"]["link"] = {"url": link}
    if annotations:
        run["annotations"] = dict(annotations)
    return run


def _split_long_runs(runs: RichText) -> RichText:
    """Split any run whose content exceeds the Notion API limit."""
    result = []
    for run in runs:
        content = run["text"]["content"]
        if len(content) <= MAX_TEXT_LENGTH:
            result.append(run)
            continue
        for start in range(0, len(content), MAX_TEXT_LENGTH):
            piece = dict(run)
            piece["text"] = {**run["text"], "content": content[start:start + MAX_TEXT_LENGTH]}
            result.append(piece)
    return result


class MarkdownConverter:
    """
    Converts Markdown to Notion blocks.

    Block handlers receive one mistune AST node and return a list of
    payloads (usually one).
    """

    def __init__(self):
        self._parser = mistune.create_markdown(
            renderer=None,
            plugins=["strikethrough", "table", "task_lists"],
        )

        # Block type handlers
        self._handlers: dict[str, Callable[[dict], list[Block]]] = {
            "heading": self._convert_heading,
            "paragraph": self._convert_paragraph,
            "block_text": self._convert_paragraph,
            "list": self._convert_list,
            "block_quote": self._convert_quote,
            "block_code": self._convert_code,
            "thematic_break": self._convert_divider,
            "table": self._convert_table,
            "block_html": self._convert_raw,
            "blank_line": self._skip,
        }

    def to_blocks(self, markdown: str) -> list[Block]:
        """
        Convert a Markdown document to Notion block payloads.

        Args:
            markdown: Markdown body (without frontmatter).

        Returns:
            Ordered list of block creation payloads.
        """
        blocks = []
        for node in self._parse(markdown):
            blocks.extend(self._convert_node(node))
        return _limit_nesting(blocks)

    def to_rich_text(self, markdown: str) -> RichText:
        """
        Convert inline Markdown to a Notion rich text array.

        Paragraphs are joined with a newline run.
        """
        runs: RichText = []
        for node in self._parse(markdown):
            if node.get("type") not in ("paragraph", "block_text", "heading"):
                continue
            if runs:
                runs.append(_text_run("\n"))
            runs.extend(self._inline(node.get("children", [])))
        return _split_long_runs(runs)

    def _parse(self, markdown: str) -> list[dict]:
        ast = self._parser(markdown or "")
        return ast if isinstance(ast, list) else []

    def _convert_node(self, node: dict) -> list[Block]:
        handler = self._handlers.get(node.get("type", ""))
        if handler:
            return handler(node)
        return self._convert_raw(node)

    # =========================================================================
    # Inline handling
    # =========================================================================

    def _inline(
        self,
        children: list[dict],
        annotations: Optional[dict] = None,
        link: Optional[str] = None,
    ) -> RichText:
        """Convert mistune inline nodes to rich text runs."""
        annotations = annotations or {}
        runs: RichText = []

        for node in children:
            ntype = node.get("type", "")

            if ntype == "text":
                if node.get("raw"):
                    runs.append(_text_run(node["raw"], annotations, link))
            elif ntype == "strong":
                runs.extend(self._inline(node.get("children", []), {**annotations, "bold": True}, link))
            elif ntype == "emphasis":
                runs.extend(self._inline(node.get("children", []), {**annotations, "italic": True}, link))
            elif ntype == "strikethrough":
                runs.extend(
                    self._inline(node.get("children", []), {**annotations, "strikethrough": True}, link)
                )
            elif ntype == "codespan":
                runs.append(_text_run(node.get("raw", ""), {**annotations, "code": True}, link))
            elif ntype == "link":
                url = node.get("attrs", {}).get("url", "")
                runs.extend(self._inline(node.get("children", []), annotations, url or link))
            elif ntype == "image":
                # Inline images degrade to a link labelled with the alt text
                url = node.get("attrs", {}).get("url", "")
                alt = self._plain_text(node.get("children", [])) or url
                runs.append(_text_run(alt, annotations, url if _is_http(url) else link))
            elif ntype in ("softbreak", "linebreak"):
                runs.append(_text_run("\n", annotations, link))
            elif node.get("raw"):
                runs.append(_text_run(node["raw"], annotations, link))
            else:
                runs.extend(self._inline(node.get("children", []), annotations, link))

        return runs

    def _rich_text(self, node: dict) -> RichText:
        return _split_long_runs(self._inline(node.get("children", [])))

    def _plain_text(self, children: list[dict]) -> str:
        return "".join(run["text"]["content"] for run in self._inline(children))

    # =========================================================================
    # Block handlers
    # =========================================================================

    def _convert_heading(self, node: dict) -> list[Block]:
        # Notion only has three heading levels
        level = min(max(node.get("attrs", {}).get("level", 1), 1), 3)
        block_type = f"heading_{level}"
        return [_block(block_type, {"rich_text": self._rich_text(node)})]

    def _convert_paragraph(self, node: dict) -> list[Block]:
        children = node.get("children", [])
        images = [c for c in children if c.get("type") == "image"]
        if len(children) == 1 and images and _is_http(images[0].get("attrs", {}).get("url", "")):
            return [self._image_block(images[0])]

        rich_text = self._rich_text(node)
        if not rich_text:
            return []
        return [_block("paragraph", {"rich_text": rich_text})]

    def _image_block(self, node: dict) -> Block:
        payload: dict[str, Any] = {
            "type": "external",
            "external": {"url": node["attrs"]["url"]},
        }
        alt = self._plain_text(node.get("children", []))
        if alt:
            payload["caption"] = [_text_run(alt)]
        return _block("image", payload)

    def _convert_list(self, node: dict) -> list[Block]:
        ordered = node.get("attrs", {}).get("ordered", False)
        blocks = []

        for item in node.get("children", []):
            inline: list[dict] = []
            nested: list[Block] = []

            for child in item.get("children", []):
                ctype = child.get("type", "")
                if ctype in ("block_text", "paragraph"):
                    if inline:
                        inline.append({"type": "softbreak"})
                    inline.extend(child.get("children", []))
                elif ctype != "blank_line":
                    nested.extend(self._convert_node(child))

            payload: dict[str, Any] = {
                "rich_text": _split_long_runs(self._inline(inline)),
            }
            if nested:
                payload["children"] = nested

            if item.get("type") == "task_list_item":
                payload["checked"] = bool(item.get("attrs", {}).get("checked"))
                blocks.append(_block("to_do", payload))
            elif ordered:
                blocks.append(_block("numbered_list_item", payload))
            else:
                blocks.append(_block("bulleted_list_item", payload))

        return blocks

    def _convert_quote(self, node: dict) -> list[Block]:
        inline: list[dict] = []
        nested: list[Block] = []
        for child in node.get("children", []):
            ctype = child.get("type", "")
            # Leading paragraphs are the quote's text; anything after them nests
            if ctype in ("paragraph", "block_text") and not nested:
                if inline:
                    inline.append({"type": "softbreak"})
                inline.extend(child.get("children", []))
            elif ctype != "blank_line":
                nested.extend(self._convert_node(child))

        payload: dict[str, Any] = {"rich_text": _split_long_runs(self._inline(inline))}
        if nested:
            payload["children"] = nested
        return [_block("quote", payload)]

    def _convert_code(self, node: dict) -> list[Block]:
        info = (node.get("attrs", {}).get("info") or "").strip()
        language = _notion_language(info.split()[0] if info else "")
        code = node.get("raw", "").rstrip("\n")
        return [
            _block(
                "code",
                {
                    "language": language,
                    "rich_text": _split_long_runs([_text_run(code)]) if code else [],
                },
            )
        ]

    def _convert_divider(self, node: dict) -> list[Block]:
        return [_block("divider", {})]

    def _convert_table(self, node: dict) -> list[Block]:
        rows: list[list[dict]] = []
        has_header = False

        for section in node.get("children", []):
            stype = section.get("type", "")
            if stype == "table_head":
                has_header = True
                rows.append(section.get("children", []))
            elif stype == "table_body":
                for row in section.get("children", []):
                    rows.append(row.get("children", []))

        if not rows:
            return []

        width = max(len(r) for r in rows)
        table_rows = []
        for cells in rows:
            row_cells = [_split_long_runs(self._inline(c.get("children", []))) for c in cells]
            # Notion rejects ragged tables
            row_cells.extend([] for _ in range(width - len(row_cells)))
            table_rows.append(_block("table_row", {"cells": row_cells}))

        return [
            _block(
                "table",
                {
                    "table_width": width,
                    "has_column_header": has_header,
                    "has_row_header": False,
                    "children": table_rows,
                },
            )
        ]

    def _convert_raw(self, node: dict) -> list[Block]:
        raw = (node.get("raw") or "").strip()
        if not raw:
            return []
        return [_block("paragraph", {"rich_text": _split_long_runs([_text_run(raw)])})]

    def _skip(self, node: dict) -> list[Block]:
        return []


def _block(block_type: str, payload: dict) -> Block:
    return {"object": "block", "type": block_type, block_type: payload}


def _limit_nesting(blocks: list[Block], depth: int = 1) -> list[Block]:
    """
    Flatten block trees deeper than MAX_NESTING_DEPTH.

    Children of a block at the deepest allowed level are moved up to follow
    it as siblings, in document order. Tables cannot give up their rows, so
    a table that lands on the deepest level is moved after its parent.
    """
    result: list[Block] = []

    for block in blocks:
        block_type = block["type"]
        payload = block[block_type]
        children = payload.get("children")

        if not children or block_type == "table":
            result.append(block)
            continue

        if depth >= MAX_NESTING_DEPTH:
            bare = {key: value for key, value in payload.items() if key != "children"}
            result.append({**block, block_type: bare})
            result.extend(_limit_nesting(children, depth))
            continue

        kept: list[Block] = []
        lifted: list[Block] = []
        for child in _limit_nesting(children, depth + 1):
            if child["type"] == "table" and depth + 1 >= MAX_NESTING_DEPTH:
                lifted.append(child)
            else:
                kept.append(child)

        if kept:
            result.append({**block, block_type: {**payload, "children": kept}})
        else:
            bare = {key: value for key, value in payload.items() if key != "children"}
            result.append({**block, block_type: bare})
        result.extend(lifted)

    return result


def _is_http(url: str) -> bool:
    return url.startswith(("http://", "https://"))


def _notion_language(info: str) -> str:
    """Map a fenced code info string to a language Notion accepts."""
    language = info.lower()
    language = LANGUAGE_ALIASES.get(language, language)
    return language if language in NOTION_CODE_LANGUAGES else "plain text"


_default_converter: Optional[MarkdownConverter] = None


def _converter() -> MarkdownConverter:
    global _default_converter
    if _default_converter is None:
        _default_converter = MarkdownConverter()
    return _default_converter


def markdown_to_blocks(markdown: str) -> list[Block]:
    """Convert Markdown to a list of Notion block payloads."""
    return _converter().to_blocks(markdown)


def markdown_to_rich_text(markdown: str) -> RichText:
    """Convert inline Markdown to a Notion rich text array."""
    return _converter().to_rich_text(markdown)
