"""Monthly report notices and report settings."""
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, Index
from sqlalchemy.sql import func
from admin_edificios.database import Base


class ReportNotice(Base):
    """Notice printed on the monthly report (aviso de informe)."""

    __tablename__ = 'report_notice'
    __table_args__ = (
        Index('idx_report_notice_month_year', 'month', 'year'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    text = Column(Text, nullable=False)
    order = Column(Integer, nullable=False, default=0, server_default='0')
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    active = Column(Boolean, nullable=False, default=True, server_default='1')
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<ReportNotice(id={self.id}, {self.month:02d}/{self.year}, order={self.order})>"


class ReportSetting(Base):
    """Key/value report configuration (e.g. the footer text)."""

    __tablename__ = 'report_setting'

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(100), nullable=False, unique=True)
    value = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<ReportSetting(key='{self.key}')>"
