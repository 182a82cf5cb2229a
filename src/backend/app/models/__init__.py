# app/models/__init__.py
# __init__.py に例えば from .spot import Spot と書くことで，app/models/spot.pyファイルの中に定義されているSpotクラスを，modelsパッケージの直下にあるかのように昇格させることができます．
# このおかげでcrudなどにおいて，from app.models import Spot と書ける．
from .audit_log import AuditAction, AuditLog
from .rating import Rating
from .spot import Spot
from .spot_report import SpotReport
from .sync_source import SyncSource
