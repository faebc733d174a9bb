"""Write rendered sections to an output directory."""

from datetime import datetime
from pathlib import Path

from reflow_reader.core.assets import AssetResolver
from reflow_reader.core.pagination import load_template, render_document
from reflow_reader.core.transcoder import HtmlTranscoder
from reflow_reader.models.archive import ArchiveModel
from reflow_reader.models.output import RenderedSection, RenderManifest


class OutputWriter:
    """Write standalone reader documents for selected sections."""

    def __init__(
        self,
        output_dir: Path,
        source_path: Path,
        archive: ArchiveModel,
        template_path: Path | None = None,
    ):
        """Initialize output writer.

        Args:
            output_dir: Directory to write output files
            source_path: Path to the source EPUB
            archive: Parsed archive the sections come from
            template_path: Optional reader template overriding the packaged one
        """
        self.output_dir = output_dir
        self.source_path = source_path
        self.archive = archive
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.template = load_template(template_path)
        self.transcoder = HtmlTranscoder(AssetResolver(archive))

    def write_section(self, index: int) -> tuple[Path, RenderedSection]:
        """Transcode one section and write it as ``section_NNN.html``."""
        entry = self.archive.entries[index]
        parts = self.transcoder.transcode(entry.markup, entry.key)
        html = render_document(self.template, parts)

        filename = f"section_{index + 1:03d}.html"
        filepath = self.output_dir / filename
        filepath.write_text(html, encoding="utf-8")

        rendered = RenderedSection(
            section_index=index,
            key=entry.key,
            title=entry.title,
            file_name=filename,
            word_count=entry.word_count,
            byte_size=len(html.encode("utf-8")),
        )
        return filepath, rendered

    def write_manifest(
        self,
        rendered_indices: list[int],
        sections: list[RenderedSection],
    ) -> Path:
        """Write the manifest file."""
        manifest = RenderManifest(
            book_title=self.archive.metadata.title,
            authors=self.archive.metadata.authors,
            source_path=str(self.source_path),
            total_sections=len(self.archive.entries),
            rendered_sections=rendered_indices,
            output_directory=str(self.output_dir),
            created_at=datetime.now(),
            sections=sections,
        )

        filepath = self.output_dir / "manifest.json"
        filepath.write_text(manifest.model_dump_json(indent=2), encoding="utf-8")
        return filepath
