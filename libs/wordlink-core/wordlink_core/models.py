from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel
from typing import List, Optional, Dict, Any


class _CamelModel(BaseModel):
    # renderer-facing payloads use camelCase on the wire
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Translate
class PhrasePair(BaseModel):
    source: str
    target: str

class TranslateRequest(BaseModel):
    text: str = Field(min_length=1)
    source_lang: str = Field(min_length=1)
    target_lang: str = Field(min_length=1)
    # Free-form bucket for future-proofing
    extra: Dict[str, Any] = Field(default_factory=dict)

# will serve as the provider envelope handed to the aligner
class TranslationResult(BaseModel):
    translation: str
    alignments: List[PhrasePair]


# Alignment
class AlignmentEdge(_CamelModel):
    source_pos: int
    target_pos: int
    group_id: int
    is_phrase: bool = False

class AlignmentGroup(_CamelModel):
    group_id: int
    color_index: int
    edges: List[AlignmentEdge] = Field(default_factory=list)

    @computed_field
    @property
    def is_phrase(self) -> bool:
        return any(edge.is_phrase for edge in self.edges)

    @computed_field
    @property
    def source_positions(self) -> List[int]:
        return sorted({edge.source_pos for edge in self.edges})

    @computed_field
    @property
    def target_positions(self) -> List[int]:
        return sorted({edge.target_pos for edge in self.edges})

class SentenceAlignment(_CamelModel):
    source_tokens: List[str] = Field(default_factory=list)
    target_tokens: List[str] = Field(default_factory=list)
    edges: List[AlignmentEdge] = Field(default_factory=list)

class AlignedSentence(SentenceAlignment):
    """A sentence alignment enriched for presentation code."""
    index: int
    source_text: str
    translation: str
    groups: List[AlignmentGroup] = Field(default_factory=list)
    dropped_pairs: int = 0


# Orchestrator
class AlignRequest(_CamelModel):
    alignments: List[PhrasePair] = Field(default_factory=list)
    source_sentence: str
    target_sentence: str

class TranslateAlignRequest(_CamelModel):
    text: str
    source_lang: str = "Dutch"
    target_lang: str = "English"
    model_key: Optional[str] = None
    # Free-form bucket for future-proofing
    extra: Dict[str, Any] = Field(default_factory=dict)

class TranslateAlignResponse(_CamelModel):
    translation: str = ""
    sentences: List[AlignedSentence] = Field(default_factory=list)
    timings: Dict[str, float] = Field(default_factory=dict)
