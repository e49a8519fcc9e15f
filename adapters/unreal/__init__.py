"""
Unreal adapter
Converts between editor blueprint context JSON and the GraphModel
"""

from .importer import BlueprintImporter
from .exporter import BlueprintExporter

__all__ = ['BlueprintImporter', 'BlueprintExporter']
