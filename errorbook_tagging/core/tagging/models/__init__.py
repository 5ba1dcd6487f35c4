"""
Core models for knowledge tagging
"""
from .base import UNRANKED_GRADE_ORDER, ErrorItem, KnowledgeTag, Subject
from .rebuild import TagRebuildTask, TagRebuildTaskState
