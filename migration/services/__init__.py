from .path_mapper import PathMapper
from .replay_engine import ReplayEngine
from .tree_capture import TreeCaptureService

__all__ = ['PathMapper', 'ReplayEngine', 'TreeCaptureService']
