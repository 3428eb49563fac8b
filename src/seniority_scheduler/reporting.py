"""
Reporting and Export Module for Shift Scheduling System

Builds per-staff statistics tables with pandas and renders the printable
monthly roster as PDF with reportlab.
"""

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer, PageBreak
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from datetime import date
import calendar
from typing import Dict, List, Any
import logging

from .context import LogLevel
from .data_manager import DataManager
from .dates import date_key, is_weekend, parse_month_key
from .scheduler_logic import Schedule
from .targets import seniority_group

logger = logging.getLogger(__name__)

STATISTICS_COLUMNS = ["Name", "Seniority", "Group", "Target", "Total", "Weekday", "Weekend", "Hours", "Difference"]


class ReportGenerator:
    """Main class for generating statistics and exports"""

    def __init__(self, data_manager: DataManager):
        self.data_manager = data_manager
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        """Setup custom report styles"""
        self.styles.add(ParagraphStyle(
            name='CustomTitle',
            parent=self.styles['Heading1'],
            fontSize=18,
            spaceAfter=30,
            alignment=1  # Center alignment
        ))

        self.styles.add(ParagraphStyle(
            name='CustomHeading',
            parent=self.styles['Heading2'],
            fontSize=14,
            spaceAfter=12
        ))

    def staff_statistics(self, schedule: Schedule) -> pd.DataFrame:
        """
        Per-staff workload for the month, sorted by seniority.

        Counts come from the day lists rather than the generation stats, so
        manual edits made after generation are reflected.
        """
        shift_duration = self.data_manager.get_constraints().shift_duration
        rows = []
        for staff in self.data_manager.get_staff_list():
            weekday = weekend = 0
            for date_str in schedule.dates_for(staff.id):
                if is_weekend(date.fromisoformat(date_str)):
                    weekend += 1
                else:
                    weekday += 1

            target = self._target_for(schedule, staff.id)
            total = weekday + weekend
            rows.append({
                "Name": staff.name,
                "Seniority": staff.seniority,
                "Group": seniority_group(staff.seniority),
                "Target": target,
                "Total": total,
                "Weekday": weekday,
                "Weekend": weekend,
                "Hours": total * shift_duration,
                "Difference": total - target
            })

        df = pd.DataFrame(rows, columns=STATISTICS_COLUMNS)
        return df.sort_values(by=["Seniority", "Name"]).reset_index(drop=True)

    def _target_for(self, schedule: Schedule, staff_id: int) -> int:
        if staff_id in schedule.staff_stats:
            return schedule.staff_stats[staff_id].target_shifts
        if staff_id in schedule.target_details:
            return schedule.target_details[staff_id].target
        return 0

    def team_summary(self, schedule: Schedule) -> Dict[str, Any]:
        """Totals across the whole team"""
        df = self.staff_statistics(schedule)
        assigned = int(df["Total"].sum()) if not df.empty else 0
        return {
            "total_staff": len(df),
            "total_shifts_needed": schedule.total_shifts_needed,
            "total_shifts_assigned": assigned,
            "unfilled_shifts": max(0, schedule.total_shifts_needed - assigned),
            "total_hours": int(df["Hours"].sum()) if not df.empty else 0,
            "over_target": df.loc[df["Difference"] > 0, "Name"].tolist(),
            "under_target": df.loc[df["Difference"] < 0, "Name"].tolist(),
            "warnings": len(schedule.logs_of(LogLevel.WARNING)),
            "errors": len(schedule.logs_of(LogLevel.ERROR))
        }

    def seniority_group_summary(self, schedule: Schedule) -> pd.DataFrame:
        """Shifts and targets summed per seniority group"""
        df = self.staff_statistics(schedule)
        return (df.groupby("Group", sort=False)[["Target", "Total", "Weekend", "Hours"]]
                .sum()
                .reset_index())

    def export_schedule_pdf(self, schedule: Schedule, output_path: str) -> bool:
        """Export the monthly roster and statistics to PDF"""
        try:
            year, month = parse_month_key(schedule.month_key)
            doc = SimpleDocTemplate(
                output_path,
                pagesize=landscape(A4),
                rightMargin=0.5*inch,
                leftMargin=0.5*inch,
                topMargin=0.5*inch,
                bottomMargin=0.5*inch
            )

            story = []
            title = Paragraph(f"Shift Schedule - {calendar.month_name[month]} {year}", self.styles['CustomTitle'])
            story.append(title)
            story.append(Spacer(1, 20))

            story.append(self._create_calendar_table(year, month, schedule))

            story.append(PageBreak())
            story.extend(self._create_statistics_content(schedule))

            doc.build(story)
            logger.info(f"Schedule PDF written to {output_path}")
            return True

        except Exception as e:
            logger.error(f"Error creating PDF: {e}", exc_info=True)
            return False

    def _create_calendar_table(self, year: int, month: int, schedule: Schedule) -> Table:
        """Create calendar table for PDF"""
        data = [['Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun']]

        for week in calendar.monthcalendar(year, month):
            week_data = []
            for day in week:
                if day == 0:
                    week_data.append('')
                else:
                    week_data.append(self._format_calendar_cell(date(year, month, day), schedule))
            data.append(week_data)

        table = Table(data, colWidths=[1.5*inch]*7)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, 0), 10),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
            ('BACKGROUND', (0, 1), (-1, -1), colors.beige),
            ('GRID', (0, 0), (-1, -1), 1, colors.black),
            ('FONTSIZE', (0, 1), (-1, -1), 8),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ]))

        return table

    def _format_calendar_cell(self, day: date, schedule: Schedule) -> Paragraph:
        staff = schedule.staff_on(date_key(day))
        content = f"<b>{day.day}</b><br/>"
        if staff:
            content += "<br/>".join(f"{member.name} ({member.seniority})" for member in staff)
        else:
            content += "---"
        return Paragraph(content, self.styles['Normal'])

    def _create_statistics_content(self, schedule: Schedule) -> List:
        """Create statistics content for PDF"""
        content = []
        content.append(Paragraph("Schedule Statistics", self.styles['CustomTitle']))
        content.append(Spacer(1, 20))

        summary = self.team_summary(schedule)
        content.append(Paragraph("Team Summary", self.styles['CustomHeading']))
        team_data = [
            ['Metric', 'Value'],
            ['Total Staff', str(summary['total_staff'])],
            ['Shifts Needed', str(summary['total_shifts_needed'])],
            ['Shifts Assigned', str(summary['total_shifts_assigned'])],
            ['Unfilled Shifts', str(summary['unfilled_shifts'])],
            ['Total Hours', str(summary['total_hours'])],
            ['Warnings', str(summary['warnings'])],
            ['Errors', str(summary['errors'])],
        ]
        team_table = Table(team_data, colWidths=[3*inch, 2*inch])
        team_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('GRID', (0, 0), (-1, -1), 1, colors.black),
        ]))
        content.append(team_table)
        content.append(Spacer(1, 20))

        content.append(Paragraph("Individual Staff Statistics", self.styles['CustomHeading']))
        df = self.staff_statistics(schedule)
        staff_data = [STATISTICS_COLUMNS]
        for row in df.itertuples(index=False):
            values = [str(value) for value in row]
            values[-1] = f"{int(row.Difference):+d}"
            staff_data.append(values)

        staff_table = Table(staff_data, colWidths=[1.6*inch, 0.8*inch, 1.4*inch] + [0.8*inch]*6)
        style = [
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('GRID', (0, 0), (-1, -1), 1, colors.black),
            ('FONTSIZE', (0, 0), (-1, -1), 8),
        ]
        for i, difference in enumerate(df["Difference"].tolist(), 1):
            if difference > 1:
                style.append(('BACKGROUND', (0, i), (-1, i), colors.lightcoral))
            elif difference < -1:
                style.append(('BACKGROUND', (0, i), (-1, i), colors.lightyellow))
        staff_table.setStyle(TableStyle(style))
        content.append(staff_table)

        return content
