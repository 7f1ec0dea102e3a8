from .entry_exporter import CSV_HEADERS, EntryExporter, render_csv, render_json, stream_entry_archive

__all__ = ["CSV_HEADERS", "EntryExporter", "render_csv", "render_json", "stream_entry_archive"]
