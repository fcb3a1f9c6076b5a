"""Content-addressed storage for build artifacts and rendered diffs."""

from repro_report.store.content_store import ContentAddressedStorage

__all__ = ["ContentAddressedStorage"]
