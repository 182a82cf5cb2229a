# scripts/init_db.py

# このスクリプトを動かす前に：`cd src` -> `docker-compose up -d db`
# 終わったら：`docker-compose down`

import sys
from pathlib import Path
from sqlalchemy import create_engine, text
from dotenv import load_dotenv

# backend/ をPythonの検索パスに追加（先に実行しないとappが見つからないよ．）
sys.path.append(str(Path(__file__).resolve().parent.parent))

# 環境変数の読み込み（Settingsより先に読み込んでおく）
dotenv_path = Path(__file__).resolve().parents[2] / '.env'
load_dotenv(dotenv_path=dotenv_path)

# base.pyをインポートすることで，Baseを継承した全てのモデルがSQLAlchemyに認識される
from app.db import base
from app.core.config import get_settings

settings = get_settings()

# このスクリプト専用のDB接続
engine = create_engine(str(settings.DATABASE_URL))

print("PostGIS拡張を有効にします...")
with engine.begin() as conn:
    conn.execute(text("CREATE EXTENSION IF NOT EXISTS postgis"))

print("データベースのテーブルを作成します...")

# Baseに紐づけられた全てのテーブルをデータベース内に作成する
base.Base.metadata.create_all(bind=engine)

print("テーブルの作成が完了しました．")
