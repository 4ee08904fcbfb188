"""
Post-extraction role filter.

Keeps only postings whose title matches a deployment's role vocabulary
(e.g. "assistenzarzt", "arzt in weiterbildung"). Titles the vocabulary does
not match can be handed to an external label classifier when one is
configured; without one they are dropped.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

import requests

from hospital_jobs.core.models import JobRecord
from hospital_jobs.core.text import clean

logger = logging.getLogger("extractor")

RELEVANT = "relevant"
IRRELEVANT = "irrelevant"


class LabelClassifier:
    """Thin client for an external text classifier.

    Contract: POST ``{"prompt": str, "labels": [str, ...]}`` and receive
    ``{"label": str}``.
    """

    def __init__(self, url: str, api_key: str = "", timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.url = url
        self.api_key = api_key
        self.timeout = float(timeout)
        self.session = session or requests.Session()

    def label(self, prompt: str, labels: Sequence[str]) -> str:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        r = self.session.post(
            self.url,
            json={"prompt": prompt, "labels": list(labels)},
            headers=headers,
            timeout=self.timeout,
        )
        r.raise_for_status()
        data = r.json()
        label = data.get("label") if isinstance(data, dict) else None
        return str(label or "").strip().lower()


class RoleFilter:
    def __init__(self, keywords: Iterable[str] = (), classifier: Optional[LabelClassifier] = None):
        self.keywords: List[str] = [k.strip().lower() for k in keywords if k and k.strip()]
        self.classifier = classifier

    @property
    def enabled(self) -> bool:
        return bool(self.keywords)

    def _first_match(self, title: str) -> Optional[str]:
        t = clean(title).lower()
        for k in self.keywords:
            if k in t:
                return k
        return None

    def _ask_classifier(self, record: JobRecord) -> bool:
        prompt = (
            f"Job title: {record.title}\n"
            f"Employer: {record.company}\n"
            f"Is this posting one of these roles: {', '.join(self.keywords)}? "
            f"Answer '{RELEVANT}' or '{IRRELEVANT}'."
        )
        try:
            return self.classifier.label(prompt, [RELEVANT, IRRELEVANT]) == RELEVANT
        except (requests.RequestException, ValueError) as e:
            logger.warning("[extractor] classifier failed for %r: %s", record.title, e)
            return False

    def keep(self, record: JobRecord) -> bool:
        if not self.keywords:
            return True
        if self._first_match(record.title):
            return True
        if self.classifier is None:
            return False
        return self._ask_classifier(record)

    def apply(self, records: Iterable[JobRecord]) -> List[JobRecord]:
        return [r for r in records if self.keep(r)]


def build_role_filter(config) -> Optional[RoleFilter]:
    if not config.role_keywords:
        return None
    classifier = None
    if config.classifier_url:
        classifier = LabelClassifier(
            config.classifier_url,
            api_key=config.classifier_api_key,
            timeout=config.fetch_timeout_s,
        )
    return RoleFilter(config.role_keywords, classifier=classifier)
