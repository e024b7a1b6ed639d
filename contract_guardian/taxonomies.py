"""
Contract type and jurisdiction taxonomies.
"""
CONTRACT_TYPE_IDS = (
    'nda',
    'service_agreement',
    'employment',
    'partnership',
    'purchase',
    'lease',
    'license',
    'vendor',
    'loan',
    'distribution',
    'franchise',
    'other',
)

# Jurisdictions with a legal-norm database
JURISDICTIONS = ('italia', 'eu', 'usa')

UNKNOWN_JURISDICTION = 'unknown'


def is_contract_type(type_id: str) -> bool:
    return type_id in CONTRACT_TYPE_IDS
