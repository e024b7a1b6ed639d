"""
JSON API for contract registration, metadata validation and analysis jobs.

Every response has the shape {"success": bool, "data" | "error": ...}.
"""
import json
import logging
from datetime import datetime, timezone

from flask import Blueprint, Response, current_app, jsonify, request
from pydantic import ValidationError as SchemaValidationError
from werkzeug.exceptions import HTTPException

from contract_guardian import __version__
from contract_guardian.container import Services
from contract_guardian.errors import AnalysisError, AppError, ExtractionError, NotFoundError, ValidationError
from contract_guardian.models import BasicMode, EnhancedMode, ValidatedMetadata
from contract_guardian.services.pre_analyzer import calculate_overall_confidence
from contract_guardian.taxonomies import is_contract_type

api_bp = Blueprint('api', __name__, url_prefix='/api')
logger = logging.getLogger(__name__)

LANGUAGES = ('it', 'en')
VIEWPOINTS = ('cliente', 'fornitore')


def _services() -> Services:
    return current_app.extensions['contract_guardian']


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Corpo della richiesta JSON non valido')
    return data


def _iso(value):
    return value.isoformat() if isinstance(value, datetime) else value


def _get_document_or_404(document_id: int):
    document = _services().store.get_document(document_id)
    if document is None:
        raise NotFoundError('Contratto non trovato')
    return document


def _get_analysis_or_404(analysis_id: int) -> dict:
    analysis = _services().store.get_analysis(analysis_id)
    if analysis is None:
        raise NotFoundError('Analisi non trovata')
    return analysis


def serialize_finding(row: dict) -> dict:
    return {
        'id': row['id'],
        'title': row['title'],
        'type': row['type'],
        'clauseText': row['clause_text'],
        'policyName': row.get('policy_name'),
        'severity': row['severity'],
        'explanation': row['explanation'],
        'redlineSuggestion': row['redline_suggestion'],
        'rank': row['rank'],
        'sourceChunkIndex': row.get('source_chunk_index'),
        'actor': row.get('actor'),
        'normIds': row.get('norm_ids') or [],
    }


def progress_percentage(analysis: dict) -> int:
    """Rough completion percentage for polling clients."""
    if analysis['status'] == 'completed':
        return 100
    stage = analysis.get('progress_stage')
    if stage == 'analyzing' and analysis.get('total_chunks'):
        return 10 + int(80 * (analysis.get('current_chunk') or 0) / analysis['total_chunks'])
    return {'chunking': 5, 'summarizing': 90, 'saving': 95}.get(stage, 0)


def serialize_analysis(analysis: dict, findings=None) -> dict:
    payload = {
        'id': analysis['id'],
        'contractId': analysis['document_id'],
        'status': analysis['status'],
        'progressStage': analysis.get('progress_stage'),
        'progressDetail': analysis.get('progress_detail'),
        'progress': progress_percentage(analysis),
        'totalChunks': analysis.get('total_chunks'),
        'currentChunk': analysis.get('current_chunk'),
        'startedAt': _iso(analysis.get('started_at')),
        'completedAt': _iso(analysis.get('completed_at')),
        'createdAt': _iso(analysis.get('created_at')),
        'errorMessage': analysis.get('error_message'),
        'executiveSummary': analysis.get('executive_summary'),
        'overallAssessment': analysis.get('overall_assessment'),
        'recommendation': analysis.get('recommendation'),
        'enhanced': analysis.get('enhanced', False),
        'language': analysis.get('language'),
        'counts': {
            'total': analysis.get('total_findings', 0),
            'importante': analysis.get('importante_count', 0),
            'consigliato': analysis.get('consigliato_count', 0),
            'suggerimento': analysis.get('suggerimento_count', 0),
            'strengths': analysis.get('strength_count', 0),
        },
    }
    if findings is not None:
        payload['findings'] = [serialize_finding(row) for row in findings]
    return payload


@api_bp.errorhandler(AppError)
def handle_app_error(error: AppError):
    logger.warning(f"{request.method} {request.path} -> {error.status_code} {error.code}: {error.message}")
    return jsonify({'success': False, 'error': error.to_dict()}), error.status_code


@api_bp.errorhandler(Exception)
def handle_unexpected_error(error: Exception):
    if isinstance(error, HTTPException):
        return error
    logger.exception(f"Unhandled error on {request.method} {request.path}")
    payload = {'code': 'INTERNAL_ERROR', 'message': 'Errore interno del server', 'statusCode': 500}
    return jsonify({'success': False, 'error': payload}), 500


@api_bp.route('/health', methods=['GET'])
def health():
    return jsonify({
        'success': True,
        'data': {
            'status': 'ok',
            'version': __version__,
            'timestamp': datetime.now(timezone.utc).isoformat(),
        }
    })


@api_bp.route('/contracts', methods=['GET'])
def list_contracts():
    """Contracts newest first, each with a digest of its latest analysis."""
    store = _services().store
    contracts = []
    for document in store.list_documents():
        latest = store.latest_analysis_for_document(document.id) or {}
        contracts.append({
            'id': document.id,
            'filename': document.filename,
            'createdAt': _iso(document.created_at),
            'analysisId': latest.get('id'),
            'analysisStatus': latest.get('status'),
            'totalFindings': latest.get('total_findings'),
            'importanteCount': latest.get('importante_count'),
            'consigliatoCount': latest.get('consigliato_count'),
            'suggerimentoCount': latest.get('suggerimento_count'),
            'strengthCount': latest.get('strength_count'),
            'analysisCompletedAt': _iso(latest.get('completed_at')),
        })
    return jsonify({'success': True, 'data': contracts})


@api_bp.route('/contracts', methods=['POST'])
def register_contract():
    """Register an already-extracted contract text."""
    data = _json_body()

    errors = {}
    filename = data.get('filename')
    text = data.get('text')
    language = data.get('language', current_app.config['DEFAULT_LANGUAGE'])
    if not isinstance(filename, str) or not filename.strip():
        errors['filename'] = ['Nome file obbligatorio']
    if not isinstance(text, str):
        errors['text'] = ['Testo del contratto obbligatorio']
    if language not in LANGUAGES:
        errors['language'] = ['Lingua non supportata (it, en)']
    if errors:
        raise ValidationError('Dati del contratto non validi', details=errors)
    if not text.strip():
        raise ExtractionError('Nessun testo estratto dal contratto')

    document = _services().store.add_document(
        filename=filename.strip(),
        text=text,
        language=language,
        page_count=data.get('pageCount'),
        extraction_confidence=data.get('confidence'),
    )
    return jsonify({'success': True, 'data': {**document.to_dict(), 'textLength': len(document.text)}}), 201


@api_bp.route('/contracts/<int:contract_id>', methods=['GET'])
def get_contract(contract_id):
    document = _get_document_or_404(contract_id)
    latest = _services().store.latest_analysis_for_document(contract_id)
    return jsonify({
        'success': True,
        'data': {
            **document.to_dict(),
            'textLength': len(document.text),
            'latestAnalysisId': latest['id'] if latest else None,
        }
    })


@api_bp.route('/contracts/<int:contract_id>', methods=['DELETE'])
def delete_contract(contract_id):
    if not _services().store.delete_document(contract_id):
        raise NotFoundError('Contratto non trovato')
    return jsonify({'success': True, 'data': {'id': contract_id, 'deleted': True}})


@api_bp.route('/contracts/<int:contract_id>/pre-analyze', methods=['POST'])
def pre_analyze_contract(contract_id):
    """Propose parties, contract type and jurisdiction for user validation."""
    services = _services()
    document = _get_document_or_404(contract_id)

    try:
        metadata = services.metadata_extractor.extract_contract_metadata(document.text, document.language)
    except AppError as e:
        logger.error(f"Pre-analysis failed for contract {contract_id}: {e.code}")
        raise AnalysisError("Errore durante l'estrazione dei metadati. Riprova.") from e

    overall = calculate_overall_confidence(metadata)
    services.store.update_document(
        contract_id,
        party_a=metadata.party_a.name,
        party_b=metadata.party_b.name,
        contract_type=metadata.contract_type.type_id,
        jurisdiction=metadata.jurisdiction.jurisdiction,
        metadata_confidence=overall,
        # Fresh guesses must be confirmed again before an enhanced run
        metadata_validated_at=None,
    )

    return jsonify({
        'success': True,
        'data': {
            'contractId': contract_id,
            'metadata': {
                **metadata.model_dump(by_alias=True),
                'overallConfidence': overall,
            },
        }
    })


@api_bp.route('/contracts/<int:contract_id>/pre-analyze', methods=['GET'])
def get_pre_analysis(contract_id):
    """Metadata stored by the last pre-analysis or validation."""
    document = _get_document_or_404(contract_id)
    if not document.contract_type and not document.jurisdiction:
        raise NotFoundError('Pre-analisi non ancora eseguita')

    return jsonify({
        'success': True,
        'data': {
            'contractId': contract_id,
            'metadata': {
                'partyA': document.party_a,
                'partyB': document.party_b,
                'contractType': document.contract_type,
                'jurisdiction': document.jurisdiction,
                'metadataConfidence': document.metadata_confidence,
                'metadataValidatedAt': _iso(document.metadata_validated_at),
            },
        }
    })


@api_bp.route('/contracts/<int:contract_id>/validate', methods=['PATCH'])
def validate_contract_metadata(contract_id):
    """Store user-confirmed metadata; enables enhanced analysis."""
    _get_document_or_404(contract_id)

    try:
        metadata = ValidatedMetadata.model_validate(_json_body())
    except SchemaValidationError as e:
        details = {}
        for err in e.errors():
            field = '.'.join(str(part) for part in err['loc']) or 'body'
            details.setdefault(field, []).append(err['msg'])
        raise ValidationError('Metadati non validi', details=details) from None

    if not is_contract_type(metadata.contract_type):
        raise ValidationError(
            'Tipo di contratto non valido',
            details={'contractType': [f"Tipo sconosciuto: {metadata.contract_type}"]}
        )

    document = _services().store.update_document(
        contract_id,
        party_a=metadata.party_a,
        party_b=metadata.party_b,
        contract_type=metadata.contract_type,
        jurisdiction=metadata.jurisdiction,
        metadata_validated_at=datetime.now(timezone.utc),
    )
    return jsonify({'success': True, 'data': document.to_dict()})


@api_bp.route('/contracts/<int:contract_id>/analyses', methods=['GET'])
def list_contract_analyses(contract_id):
    _get_document_or_404(contract_id)
    analyses = _services().store.list_analyses_for_document(contract_id)
    return jsonify({'success': True, 'data': [serialize_analysis(a) for a in analyses]})


@api_bp.route('/analyze', methods=['POST'])
def start_analysis():
    """
    Start an analysis in the background.

    Enhanced mode is used when the contract has validated metadata. Returns 200
    with the running job when one is already processing, 201 otherwise.
    """
    services = _services()
    data = _json_body()

    contract_id = data.get('contractId')
    if not isinstance(contract_id, int) or isinstance(contract_id, bool):
        raise ValidationError('contractId è richiesto e deve essere un numero')

    language = data.get('language')
    if language is not None and language not in LANGUAGES:
        raise ValidationError('Lingua non supportata (it, en)')

    perspective = data.get('perspective', 'cliente')
    if perspective not in VIEWPOINTS:
        raise ValidationError('Prospettiva non valida (cliente, fornitore)')

    document = services.store.get_document(contract_id)
    if document is None:
        raise NotFoundError(f'Contratto {contract_id} non trovato')

    if language is not None and language != document.language:
        services.store.update_document(contract_id, language=language)

    mode = EnhancedMode() if document.has_validated_metadata else BasicMode(perspective)
    analysis_id, created = services.worker.submit(contract_id, mode, language)
    record = services.store.get_analysis(analysis_id)

    if not created:
        message = 'Analisi già in corso'
    elif isinstance(mode, EnhancedMode):
        message = 'Analisi potenziata avviata'
    else:
        message = 'Analisi avviata'

    return jsonify({
        'success': True,
        'data': {
            'analysisId': analysis_id,
            'status': record['status'] if record else 'processing',
            'message': message,
            'enhanced': bool(record and record.get('enhanced')),
        }
    }), 201 if created else 200


@api_bp.route('/analyze/<int:analysis_id>', methods=['GET'])
def get_analysis(analysis_id):
    services = _services()
    analysis = _get_analysis_or_404(analysis_id)
    findings = services.store.get_findings(analysis_id) if analysis['status'] == 'completed' else []

    payload = serialize_analysis(analysis, findings)
    document = services.store.get_document(analysis['document_id'])
    if document is not None:
        payload.update({
            'partyA': document.party_a,
            'partyB': document.party_b,
            'contractType': document.contract_type,
            'jurisdiction': document.jurisdiction,
            'metadataConfidence': document.metadata_confidence,
        })
    return jsonify({'success': True, 'data': payload})


@api_bp.route('/report/<int:analysis_id>/export', methods=['GET'])
def export_report(analysis_id):
    """Download a completed analysis as a JSON file."""
    services = _services()
    analysis = _get_analysis_or_404(analysis_id)
    if analysis['status'] != 'completed':
        raise ValidationError('Analisi non ancora completata')

    document = services.store.get_document(analysis['document_id'])
    report = {
        'contract': document.to_dict() if document else None,
        'analysis': serialize_analysis(analysis, services.store.get_findings(analysis_id)),
        'exportedAt': datetime.now(timezone.utc).isoformat(),
    }
    body = json.dumps(report, ensure_ascii=False, indent=2)
    return Response(
        body,
        mimetype='application/json',
        headers={'Content-Disposition': f'attachment; filename="analisi-{analysis_id}.json"'}
    )


@api_bp.route('/legal-norms/<norm_id>', methods=['GET'])
def get_legal_norm(norm_id):
    norm = _services().norm_index.get(norm_id)
    if norm is None:
        raise NotFoundError('Norma non trovata')
    return jsonify({'success': True, 'data': norm.to_dict()})


@api_bp.route('/legal-norms', methods=['GET'])
def list_legal_norms():
    """All norms of one jurisdiction, or the indexed jurisdictions with their norm counts."""
    norm_index = _services().norm_index
    jurisdiction = request.args.get('jurisdiction')

    if jurisdiction is None:
        counts = {name: len(norm_index.all_for(name)) for name in norm_index.jurisdictions()}
        return jsonify({'success': True, 'data': {'jurisdictions': counts}})

    if jurisdiction not in norm_index.jurisdictions():
        raise ValidationError(
            'Giurisdizione non supportata',
            details={'jurisdiction': [f"Valori ammessi: {', '.join(norm_index.jurisdictions())}"]}
        )
    norms = norm_index.all_for(jurisdiction)
    return jsonify({'success': True, 'data': [norm.to_dict() for norm in norms]})
