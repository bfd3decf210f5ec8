"""Static HTML documentation pages split into heading sections."""

import logging
import re
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from .analyzer_base import PathAnalyzer, PathLike
from .models import ChunkKind, CodeChunk, sort_chunks
from .walker import AnalysisContext

logger = logging.getLogger(__name__)

HEADING_RE = re.compile(r"^h([1-6])$")
STRIPPED_TAGS = ["script", "style", "noscript", "template"]
MAX_SECTION_TEXT = 4000


def normalize_text(text: str) -> str:
    return " ".join(text.split())


def heading_level(tag: Tag) -> int:
    match = HEADING_RE.match(tag.name or "")
    return int(match.group(1)) if match else 0


class HtmlAnalyzer(PathAnalyzer):
    """Emit one SECTION chunk per heading, or a FILE chunk for pages without headings."""

    language = "html"

    def analyze_paths(
        self,
        paths: Sequence[PathLike],
        context: Optional[AnalysisContext] = None,
    ) -> List[CodeChunk]:
        context = context or self.new_context()
        chunks: List[CodeChunk] = []
        seen = set()

        for root in paths:
            for file_path in self.walker.walk(Path(root), self.language):
                context.check_cancelled(chunks)
                context.files_seen += 1
                key = str(file_path.resolve())
                if key in seen:
                    continue
                seen.add(key)
                try:
                    chunks.extend(self.analyze_file(file_path))
                except Exception as e:
                    logger.warning(f"Error analyzing HTML file {file_path}: {e}")

        logger.info(f"Extracted {len(chunks)} HTML chunks")
        return sort_chunks(chunks)

    def analyze_file(self, file_path: Path) -> List[CodeChunk]:
        source = self.read_source(file_path)
        if source is None:
            return []
        try:
            soup = BeautifulSoup(source.decode("utf-8", errors="replace"), "html.parser")
        except Exception as e:
            logger.warning(f"Error parsing HTML file {file_path}: {e}")
            return []
        line_count = max(source.count(b"\n") + (0 if source.endswith(b"\n") else 1), 1)
        return self.analyze_soup(soup, str(file_path), line_count)

    def analyze_soup(self, soup: BeautifulSoup, file_path: str, line_count: int) -> List[CodeChunk]:
        """Split a parsed page into chunks.

        Args:
            soup: Parsed document
            file_path: Path recorded on the chunks
            line_count: Number of lines in the source file

        Returns:
            Section chunks in document order, or a single file chunk
        """
        title_tag = soup.find("title")
        page_title = normalize_text(title_tag.get_text()) if title_tag else ""
        package = page_title or Path(file_path).stem

        for element in soup(STRIPPED_TAGS):
            element.decompose()

        container = soup.body or soup
        headings = [tag for tag in container.find_all(HEADING_RE) if normalize_text(tag.get_text(" "))]

        if not headings:
            text = normalize_text(container.get_text(" "))
            if not text and not page_title:
                return []
            return [
                CodeChunk(
                    kind=ChunkKind.FILE,
                    name=package,
                    package=package,
                    language=self.language,
                    file_path=file_path,
                    start_line=1,
                    end_line=line_count,
                    selection_start_line=1,
                    selection_end_line=1,
                    signature=f"<title>{page_title}</title>" if page_title else "",
                    docstring=text[:MAX_SECTION_TEXT],
                    code="\n\n".join(self._code_blocks(container.find_all(["pre", "code"]))),
                    metadata={"page_title": page_title},
                )
            ]

        chunks: List[CodeChunk] = []
        breadcrumb: List[Tuple[int, str]] = []
        for index, heading in enumerate(headings):
            level = heading_level(heading)
            title = normalize_text(heading.get_text(" "))
            while breadcrumb and breadcrumb[-1][0] >= level:
                breadcrumb.pop()
            parents = [name for _, name in breadcrumb]
            breadcrumb.append((level, title))

            next_heading = headings[index + 1] if index + 1 < len(headings) else None
            start = heading.sourceline or 1
            if next_heading is not None and next_heading.sourceline:
                end = max(next_heading.sourceline - 1, start)
            else:
                end = max(line_count, start)

            text, code_blocks = self._section_content(heading, next_heading)
            classes = heading.get("class") or []
            chunks.append(
                CodeChunk(
                    kind=ChunkKind.SECTION,
                    name=title,
                    package=package,
                    language=self.language,
                    file_path=file_path,
                    start_line=start,
                    end_line=end,
                    selection_start_line=start,
                    selection_end_line=start,
                    signature=f"<h{level}>{title}</h{level}>",
                    docstring=text[:MAX_SECTION_TEXT],
                    code="\n\n".join(code_blocks),
                    metadata={
                        "heading_level": level,
                        "page_title": page_title,
                        "html_id": heading.get("id", ""),
                        "class": " ".join(classes) if isinstance(classes, list) else str(classes),
                        "code_blocks": len(code_blocks),
                        "parent_sections": parents,
                    },
                )
            )
        return chunks

    def _section_content(self, heading: Tag, next_heading: Optional[Tag]) -> Tuple[str, List[str]]:
        """Collect text and code blocks between a heading and the next one."""
        texts: List[str] = []
        code_tags: List[Tag] = []
        for element in heading.next_elements:
            if element is next_heading:
                break
            if isinstance(element, Tag):
                if element.name in ("pre", "code"):
                    code_tags.append(element)
                continue
            if isinstance(element, NavigableString) and not isinstance(element, Comment):
                if any(parent is heading for parent in element.parents):
                    continue
                texts.append(str(element))
        return normalize_text(" ".join(texts)), self._code_blocks(code_tags)

    @staticmethod
    def _code_blocks(tags: List[Tag]) -> List[str]:
        blocks: List[str] = []
        for tag in tags:
            if tag.name == "code" and tag.find_parent("pre") is not None:
                continue
            code = tag.get_text().strip("\n")
            if code.strip():
                blocks.append(code)
        return blocks
