"""Summary pipeline and summarizer."""

from .pipeline import ConversationPipeline, PipelineOutcome, SummaryRun, SummaryStage
from .summarizer import Summarizer

__all__ = [
    "ConversationPipeline",
    "PipelineOutcome",
    "Summarizer",
    "SummaryRun",
    "SummaryStage",
]
