import io
import json
import logging
import uuid
from typing import List, Optional, Union

from app.database import db
from app.models.audit import AuditEvent, Action, Actor, ActionType
from app.models.requisition import Requisition
from app.models.user import User

# ReportLab Imports
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle
from reportlab.lib.styles import getSampleStyleSheet

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = Actor(id="requisition_workflow", name="Workflow", type="SYSTEM")

class AuditLogger:

    async def log_event(self,
                        requisition: Requisition,
                        action_type: Union[str, ActionType],
                        actor: Union[User, Actor],
                        details: str,
                        step_index: Optional[int] = None,
                        success: bool = True) -> Optional[AuditEvent]:
        """
        Record a workflow event. The audit trail is written after the state
        change it describes, so a failure here is logged and not raised.
        """
        if isinstance(actor, User):
            actor = Actor(id=actor.username, name=actor.full_name or actor.username, type="USER")

        approver_role = None
        if step_index is not None and 0 <= step_index < len(requisition.approval_chain):
            approver_role = requisition.approval_chain[step_index].approver_role

        event = AuditEvent(
            event_id=f"EVT-{uuid.uuid4().hex}",
            requisition_id=requisition.id,
            department_id=requisition.department_id,
            actor=actor,
            action=Action(
                action_type=action_type,
                performed_by=actor,
                details=details,
                success=success,
            ),
            step_index=step_index,
            approver_role=approver_role,
        )

        logger.info(f"AUDIT [{event.action.action_type}]: {details} ({requisition.id})")
        if not db.audit:
            logger.warning("Audit DB not available, skipping log save.")
            return event
        try:
            await db.audit.log_event(event)
        except Exception:
            logger.exception(f"Failed to persist audit event for {requisition.id}")
        return event

    async def get_audit_trail(self, requisition_id: str) -> List[AuditEvent]:
        if not db.audit:
            return []
        return await db.audit.get_for_requisition(requisition_id)

    async def generate_audit_report(self, requisition_id: str, format: str = "PDF") -> bytes:
        """Render the audit trail of a requisition as PDF or JSON bytes."""
        events = await self.get_audit_trail(requisition_id)

        if format.upper() == "PDF":
            return self._create_pdf(requisition_id, events)
        elif format.upper() == "JSON":
            return json.dumps([e.model_dump(mode="json") for e in events], indent=2).encode("utf-8")
        else:
            raise ValueError(f"Unsupported format {format}")

    def _create_pdf(self, requisition_id: str, events: List[AuditEvent]) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(buffer, pagesize=letter)
        styles = getSampleStyleSheet()
        story = []

        story.append(Paragraph(f"Audit Report: Requisition {requisition_id}", styles['Title']))
        story.append(Spacer(1, 12))

        data = [["Timestamp", "Action", "Actor", "Step", "Details"]]

        for e in events:
            ts = e.timestamp.strftime("%Y-%m-%d %H:%M:%S")
            actor = f"{e.actor.name} ({e.actor.type})"
            step = e.approver_role or ""
            details = e.action.details[:80] + ("..." if len(e.action.details) > 80 else "")

            data.append([ts, e.action.action_type, actor, step, details])

        t = Table(data, colWidths=[95, 75, 100, 80, 180])
        t.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
            ('BACKGROUND', (0, 1), (-1, -1), colors.beige),
            ('GRID', (0, 0), (-1, -1), 1, colors.black),
            ('FONTSIZE', (0, 0), (-1, -1), 8),
        ]))

        story.append(t)
        doc.build(story)
        return buffer.getvalue()

audit_logger = AuditLogger()
