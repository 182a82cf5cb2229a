# app/models/spot_report.py
import uuid
from sqlalchemy import Column, String, Text, DateTime, ARRAY, func
from app.db.base_class import Base

class SpotReport(Base):
    __tablename__ = "spot_reports"

    id = Column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    spot_id = Column(String(32), index=True, nullable=False)
    # 通報時点のスポット情報．スポットが削除されてもキューで読めるよう複製して持つ．
    spot_name = Column(String, nullable=False)
    spot_city = Column(String, nullable=True)
    spot_country_code = Column(String(2), nullable=True)

    categories = Column(ARRAY(String), nullable=False)
    other_category = Column(String, nullable=True)
    details = Column(Text, nullable=True)
    contact_email = Column(String, nullable=True)
    reporter_user_id = Column(String, nullable=True) # 未ログインの通報ではNULL
    duplicate_of_spot_id = Column(String(32), nullable=True)

    status = Column(String, index=True, nullable=False, default='New')
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
