"""Data models used throughout the analysis pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import FailureKind


@dataclass
class KeyElement:
    """An element the model reports as significant for the page's intent."""

    selector: str
    element_type: str
    purpose: str
    importance: str
    content: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KeyElement":
        return cls(
            selector=data["selector"],
            element_type=data["elementType"],
            purpose=data["purpose"],
            importance=data["importance"],
            content=data.get("content"),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "selector": self.selector,
            "elementType": self.element_type,
            "purpose": self.purpose,
        }
        if self.content is not None:
            payload["content"] = self.content
        payload["importance"] = self.importance
        return payload


@dataclass
class AnalysisResult:
    """Parsed model answer conforming to the response schema."""

    key_elements: List[KeyElement]
    page_type: str
    primary_intent: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisResult":
        return cls(
            key_elements=[KeyElement.from_dict(item) for item in data["keyElements"]],
            page_type=data["pageType"],
            primary_intent=data["primaryIntent"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keyElements": [element.to_dict() for element in self.key_elements],
            "pageType": self.page_type,
            "primaryIntent": self.primary_intent,
        }


@dataclass
class ElementSample:
    """Descriptor of a single element matched in the live DOM."""

    tag_name: str
    id: Optional[str] = None
    class_name: Optional[str] = None
    text_content: Optional[str] = None
    href: Optional[str] = None
    type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tagName": self.tag_name,
            "id": self.id,
            "className": self.class_name,
            "textContent": self.text_content,
            "href": self.href,
            "type": self.type,
        }


@dataclass
class SelectorMatch:
    """Outcome of running a selector against a document."""

    count: int
    samples: List[ElementSample] = field(default_factory=list)


@dataclass
class ValidatedElement:
    """Key element cross-checked against the live DOM."""

    selector: str
    element_type: str
    purpose: str
    importance: str
    found: bool
    count: int
    actual_elements: List[ElementSample] = field(default_factory=list)
    content: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_match(cls, element: KeyElement, match: SelectorMatch) -> "ValidatedElement":
        return cls(
            selector=element.selector,
            element_type=element.element_type,
            purpose=element.purpose,
            importance=element.importance,
            found=match.count > 0,
            count=match.count,
            actual_elements=list(match.samples),
            # Matched records describe the live elements instead of the reported content.
            content=None if match.count else element.content,
        )

    @classmethod
    def invalid(cls, element: KeyElement, error: str) -> "ValidatedElement":
        return cls(
            selector=element.selector,
            element_type=element.element_type,
            purpose=element.purpose,
            importance=element.importance,
            found=False,
            count=0,
            content=element.content,
            error=error,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "selector": self.selector,
            "elementType": self.element_type,
            "purpose": self.purpose,
        }
        if self.content is not None:
            payload["content"] = self.content
        payload["importance"] = self.importance
        payload["found"] = self.found
        if self.error is not None:
            payload["error"] = self.error
        payload["count"] = self.count
        payload["actualElements"] = [sample.to_dict() for sample in self.actual_elements]
        return payload


@dataclass
class AnalysisReport:
    """Result of one successful run: the raw analysis and its validated elements."""

    analysis: AnalysisResult
    validated_elements: List[ValidatedElement]
    url: Optional[str] = None

    ok = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "analysis": self.analysis.to_dict(),
            "validatedElements": [item.to_dict() for item in self.validated_elements],
        }


@dataclass
class AnalysisFailure:
    """Terminal failure of one run, tagged with the step that failed."""

    kind: FailureKind
    message: str
    hint: Optional[str] = None
    url: Optional[str] = None

    ok = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "error": self.kind.value,
            "message": self.message,
            "hint": self.hint,
        }
