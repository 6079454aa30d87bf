from datetime import date
from typing import Dict, List, Optional
from edurate.database import get_db
from edurate.models import Classroom, FeedbackPeriod, Term
from edurate.services.eligibility_service import period_to_dict
from edurate.utils.logger import get_logger

logger = get_logger(__name__)


def term_to_dict(term: Term) -> Dict:
    return {
        'id': term.id,
        'org_id': term.org_id,
        'name': term.name,
        'start_date': term.start_date.isoformat() if term.start_date else None,
        'end_date': term.end_date.isoformat() if term.end_date else None,
        'active_status': term.active_status
    }


def _parse_date(value) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(value)


class TermService:
    """Terms, feedback periods and the classrooms each period covers"""

    def __init__(self, session_factory=None):
        self.session_factory = session_factory

    def create_term(self, org_id: int, name: str, start_date, end_date,
                    active_status: bool = True) -> Dict:
        try:
            start, end = _parse_date(start_date), _parse_date(end_date)
        except ValueError:
            return {'error': 'Invalid date format. Use ISO format'}
        if not name or not start or not end:
            return {'error': 'Name, start_date and end_date are required'}
        if end < start:
            return {'error': 'end_date must not be before start_date'}

        with get_db(self.session_factory) as db:
            term = Term(org_id=org_id, name=name, start_date=start, end_date=end,
                        active_status=active_status)
            db.add(term)
            db.flush()
            logger.info(f"Created term {term.id} ({name}) for org {org_id}")
            return term_to_dict(term)

    def create_period(self, term_id: int, name: str, start_date=None, end_date=None,
                      active_status: bool = False, classroom_ids: List[int] = None) -> Dict:
        try:
            start, end = _parse_date(start_date), _parse_date(end_date)
        except ValueError:
            return {'error': 'Invalid date format. Use ISO format'}
        if not name:
            return {'error': 'Name is required'}

        with get_db(self.session_factory) as db:
            term = db.query(Term).filter_by(id=term_id).first()
            if not term:
                return {'error': 'Term not found'}

            period = FeedbackPeriod(term_id=term.id, name=name, start_date=start,
                                    end_date=end, active_status=active_status)
            if classroom_ids:
                period.classrooms = db.query(Classroom).filter(Classroom.id.in_(classroom_ids)).all()
            db.add(period)
            db.flush()
            logger.info(f"Created feedback period {period.id} ({name}) in term {term_id}")
            return period_to_dict(period)

    def link_classroom(self, period_id: int, classroom_id: int) -> Dict:
        """Open a period for a classroom"""
        with get_db(self.session_factory) as db:
            period = db.query(FeedbackPeriod).filter_by(id=period_id).first()
            classroom = db.query(Classroom).filter_by(id=classroom_id).first()
            if not period or not classroom:
                return {'error': 'Feedback period or classroom not found'}

            if classroom not in period.classrooms:
                period.classrooms.append(classroom)
            return {'success': True, 'period_id': period_id, 'classroom_id': classroom_id}

    def set_period_active(self, period_id: int, active: bool) -> Dict:
        with get_db(self.session_factory) as db:
            period = db.query(FeedbackPeriod).filter_by(id=period_id).first()
            if not period:
                return {'error': 'Feedback period not found'}
            period.active_status = bool(active)
            db.flush()
            logger.info(f"Feedback period {period_id} active={period.active_status}")
            return period_to_dict(period)

    def set_term_active(self, term_id: int, active: bool) -> Dict:
        with get_db(self.session_factory) as db:
            term = db.query(Term).filter_by(id=term_id).first()
            if not term:
                return {'error': 'Term not found'}
            term.active_status = bool(active)
            db.flush()
            logger.info(f"Term {term_id} active={term.active_status}")
            return term_to_dict(term)

    def list_periods(self, term_id: int) -> List[Dict]:
        with get_db(self.session_factory) as db:
            periods = db.query(FeedbackPeriod).filter(
                FeedbackPeriod.term_id == term_id
            ).order_by(FeedbackPeriod.start_date.asc(), FeedbackPeriod.id.asc()).all()

            results = []
            for period in periods:
                data = period_to_dict(period)
                data['classroom_ids'] = sorted(c.id for c in period.classrooms)
                results.append(data)
            return results

    def active_term(self, org_id: int) -> Optional[Dict]:
        with get_db(self.session_factory) as db:
            term = db.query(Term).filter(
                Term.org_id == org_id,
                Term.active_status.is_(True)
            ).order_by(Term.start_date.desc()).first()
            return term_to_dict(term) if term else None
