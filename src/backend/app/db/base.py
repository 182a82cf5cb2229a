# app/db/base.py
# Alembicとinit_db.pyが全テーブルを認識できるよう，Baseと全モデルをここで読み込む．
from app.db.base_class import Base
from app.models import AuditLog, Rating, Spot, SpotReport, SyncSource
