"""
Free-form experiment description carried alongside a dataset.

Modeled on the MIAME record attached to microarray submissions: who ran the
experiment, where, what it was called, and where to read more. Nothing here
is validated against the expression data; it is provenance only.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Any, Mapping, Optional

__all__ = ['ExperimentInfo']


@dataclass(frozen=True)
class ExperimentInfo:
    """
    Experiment description (author, lab, title, abstract, ...).

    Unknown keys are kept in ``other`` so nothing from the source is lost.

    Examples:
        >>> info = ExperimentInfo.from_mapping({
        ...     'name': 'A. Researcher',
        ...     'title': 'Gene expression in lymphoblastoid cell lines',
        ...     'scan_protocol': 'GeneChip Scanner 3000',
        ... })
        >>> info.other['scan_protocol']
        'GeneChip Scanner 3000'
    """
    name: Optional[str] = None
    lab: Optional[str] = None
    contact: Optional[str] = None
    title: Optional[str] = None
    abstract: Optional[str] = None
    url: Optional[str] = None
    pubmed_ids: tuple[str, ...] = ()
    other: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'pubmed_ids', tuple(str(p) for p in self.pubmed_ids))
        object.__setattr__(self, 'other', MappingProxyType(dict(self.other)))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> ExperimentInfo:
        known = {f.name for f in fields(cls)} - {'other'}
        kwargs = {k: v for k, v in mapping.items() if k in known}
        other = dict(mapping.get('other', {}) or {})
        other.update({k: v for k, v in mapping.items() if k not in known and k != 'other'})
        if 'pubmed_ids' in kwargs and isinstance(kwargs['pubmed_ids'], (str, int)):
            kwargs['pubmed_ids'] = (kwargs['pubmed_ids'],)
        return cls(**kwargs, other=other)

    @classmethod
    def coerce(cls, value: ExperimentInfo | Mapping[str, Any] | None) -> ExperimentInfo:
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            return cls.from_mapping(value)
        raise TypeError(f"metadata must be ExperimentInfo or a mapping, got {type(value)}")

    def as_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for f in fields(self):
            if f.name == 'other':
                continue
            value = getattr(self, f.name)
            if value not in (None, ()):
                result[f.name] = list(value) if f.name == 'pubmed_ids' else value
        result.update(self.other)
        return result

    def is_empty(self) -> bool:
        return not self.as_dict()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExperimentInfo):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __hash__(self) -> int:
        return hash((self.name, self.title, self.pubmed_ids))
