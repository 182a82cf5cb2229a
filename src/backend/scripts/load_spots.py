# scripts/load_spots.py

# 手元のファイル（KMZ・KML・GeoJSON・CSV）からスポットを一括登録する．
# 使い方：python scripts/load_spots.py <ファイル> [--source <同期元ID>] [--folder <フォルダ名> ...]
# このスクリプトを動かす前に：`cd src` -> `docker-compose up -d db`

import sys
import random
import argparse
from pathlib import Path
import pandas as pd
from tqdm import tqdm
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

# backend/ をPythonの検索パスに追加（先に実行しないとappが見つからないよ．）
sys.path.append(str(Path(__file__).resolve().parent.parent))

from app.models import Spot
from app.core.config import get_settings
from app.crud import spot as crud_spot
from app.crud import sync_source as crud_sync_source
from app.services.feed_service import Placemark, clean_description, load_placemarks

settings = get_settings()

# このスクリプト専用のDBセッションを確立
engine = create_engine(str(settings.DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

CSV_COLUMNS = ('name', 'latitude', 'longitude')

def read_csv_placemarks(path: Path) -> list[Placemark]:
    """
    name, latitude, longitude（必須），description（任意）の列を持つCSV．
    """
    df = pd.read_csv(path, encoding='utf-8', header=0)
    missing = [col for col in CSV_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(f"CSVに必要な列がありません: {', '.join(missing)}")

    # 座標が数値でない行は捨てる
    df['latitude'] = pd.to_numeric(df['latitude'], errors='coerce')
    df['longitude'] = pd.to_numeric(df['longitude'], errors='coerce')
    df = df.dropna(subset=['latitude', 'longitude'])
    if 'description' not in df.columns:
        df['description'] = ''

    return [
        Placemark(
            name=str(row['name']).strip() if pd.notna(row['name']) else 'Unnamed Spot',
            description=str(row['description']) if pd.notna(row['description']) else '',
            latitude=float(row['latitude']),
            longitude=float(row['longitude']),
        )
        for _, row in df.iterrows()
    ]

def read_placemarks(path: Path, include_folders: list[str] | None) -> list[Placemark]:
    if path.suffix.lower() == '.csv':
        return read_csv_placemarks(path)
    return load_placemarks(path.name, path.read_bytes(), include_folders=include_folders)

def main():
    parser = argparse.ArgumentParser(description="ファイルからスポットを一括登録する")
    parser.add_argument('path', type=Path)
    parser.add_argument('--source', default=None, help="同期元ID（省略時はネイティブスポット）")
    parser.add_argument('--folder', action='append', default=None, help="取り込むKMLフォルダ（複数指定可）")
    args = parser.parse_args()

    print(f"{args.path} を読み込み中...")
    placemarks = read_placemarks(args.path, args.folder)
    print(f"{len(placemarks)}件のスポットが見つかりました．")

    db: Session = SessionLocal()

    try:
        source_name = None
        if args.source:
            source = crud_sync_source.get_source(db, args.source)
            if source is None:
                print(f"同期元が見つかりません: {args.source}")
                return
            source_name = source.name

        created = updated = skipped = 0
        for placemark in tqdm(placemarks, desc="Loading Spots"):
            lat, lon = placemark.latitude, placemark.longitude
            if not (-90 <= lat <= 90 and -180 <= lon <= 180):
                skipped += 1
                continue

            values = {
                'name': placemark.name,
                'description': clean_description(placemark.description),
                'latitude': lat,
                'longitude': lon,
                'spot_source': args.source,
                'spot_source_name': source_name,
                'folder_name': placemark.folder_name,
            }

            existing = crud_spot.find_by_source_and_location(db, args.source, lat, lon) if args.source else None
            if existing is not None:
                for key, value in crud_spot.with_location(values).items():
                    setattr(existing, key, value)
                updated += 1
            else:
                values.update(ranking=random.random(), average_rating=0.0, rating_count=0, wilson_lower_bound=0.0)
                db.add(Spot(**crud_spot.with_location(values)))
                created += 1

        # 全件まとめてコミット
        db.commit()
        print(f"登録が完了しました．作成: {created}件，更新: {updated}件，スキップ: {skipped}件")

    except Exception as e:
        print(f"エラーが発生しました: {e}")
        db.rollback() # エラーが発生した場合はロールバック
    finally:
        db.close() # セッションを閉じる

if __name__ == "__main__":
    main()
