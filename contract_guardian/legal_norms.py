"""
Legal norm lookup backed by static per-jurisdiction JSON databases.

Enhanced analysis embeds the most relevant norms in the system prompt so the
model can cite them by norm_id.
"""
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from contract_guardian.taxonomies import JURISDICTIONS

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / 'data' / 'legal_norms'

DEFAULT_MIN_RELEVANCE = 0.7


@dataclass(frozen=True)
class LegalNorm:
    norm_id: str
    title: str
    citation: str
    category: str
    url: str
    jurisdiction: str
    relevance: Dict[str, float] = field(default_factory=dict)

    def relevance_for(self, contract_type: str) -> float:
        """Relevance score for a contract type; 0.0 when not rated."""
        return self.relevance.get(contract_type, 0.0)

    def to_dict(self) -> dict:
        return {
            'normId': self.norm_id,
            'title': self.title,
            'citation': self.citation,
            'category': self.category,
            'url': self.url,
            'jurisdiction': self.jurisdiction,
        }


class LegalNormIndex:
    """
    In-memory index of legal norms by jurisdiction.

    Args:
        databases: Mapping jurisdiction -> list of norms. Loaded from the
            bundled JSON files when omitted.
    """

    def __init__(self, databases: Optional[Dict[str, List[LegalNorm]]] = None):
        self._databases = databases if databases is not None else load_databases()

    def jurisdictions(self) -> List[str]:
        return list(self._databases)

    def _database(self, jurisdiction: str) -> List[LegalNorm]:
        if jurisdiction not in self._databases:
            raise ValueError(f"Unknown jurisdiction: {jurisdiction}")
        return self._databases[jurisdiction]

    def query(
        self,
        contract_type: str,
        jurisdiction: str,
        min_relevance: float = DEFAULT_MIN_RELEVANCE
    ) -> List[LegalNorm]:
        """
        Norms relevant to a contract type, most relevant first.

        Args:
            contract_type: Contract type id (e.g. 'nda').
            jurisdiction: One of the indexed jurisdictions.
            min_relevance: Inclusive relevance threshold (0-1).

        Returns:
            Norms with relevance >= min_relevance, sorted by relevance descending.

        Raises:
            ValueError: If the jurisdiction is not indexed.
        """
        matches = [
            norm for norm in self._database(jurisdiction)
            if norm.relevance_for(contract_type) >= min_relevance
        ]
        return sorted(matches, key=lambda norm: norm.relevance_for(contract_type), reverse=True)

    def all_for(self, jurisdiction: str) -> List[LegalNorm]:
        return list(self._database(jurisdiction))

    def get(self, norm_id: str) -> Optional[LegalNorm]:
        """Find a norm by id across all jurisdictions."""
        for norms in self._databases.values():
            for norm in norms:
                if norm.norm_id == norm_id:
                    return norm
        return None


def _load_file(path: Path) -> List[LegalNorm]:
    with open(path, encoding='utf-8') as f:
        data = json.load(f)

    jurisdiction = data['jurisdiction']
    return [
        LegalNorm(
            norm_id=entry['norm_id'],
            title=entry['title'],
            citation=entry['citation'],
            category=entry['category'],
            url=entry['url'],
            jurisdiction=jurisdiction,
            relevance=dict(entry.get('relevance', {})),
        )
        for entry in data['norms']
    ]


def load_databases(data_dir: Path = DATA_DIR) -> Dict[str, List[LegalNorm]]:
    """Load every jurisdiction database from data_dir."""
    databases = {}
    for jurisdiction in JURISDICTIONS:
        databases[jurisdiction] = _load_file(data_dir / f'{jurisdiction}.json')
        logger.debug(f"Loaded {len(databases[jurisdiction])} legal norms for {jurisdiction}")
    return databases
