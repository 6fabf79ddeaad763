"""Workflow definitions module."""

from workflows.catalog_sync_workflow import CatalogSyncInput, CatalogSyncWorkflow

__all__ = ["CatalogSyncInput", "CatalogSyncWorkflow"]
