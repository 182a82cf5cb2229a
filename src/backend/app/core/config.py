# app/core/config.py
from functools import lru_cache
from pydantic import PostgresDsn, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """
    1. Setting()の役割
        ・早期失敗：型やフォーマットの不正があれば起動時に停止
        ・型の保証：型変換を一手に担うことでアプリ全体に型安全を提供
        ・環境変数名の一元管理：システム環境変数の名前を変更する際にコード全体に影響しない．

    2. 読み込み優先順位
        ・コード引数：Settings(DB_PORT=9999)など
        ・システム環境変数
        ・.envファイル
        ・デフォルト値（クラス宣言内）
    """
    DB_HOST: str = 'localhost' # ローカルスクリプト用のデフォルト値
    DB_PORT: int = 5432
    DB_NAME: str = 'parkour_spots'
    DB_USER: str = 'postgres'
    DB_PASSWORD: str = ''

    # S3（画像ストレージ）
    S3_BUCKET_NAME: str | None = None
    S3_PUBLIC_BASE_URL: str | None = None # CloudFrontなどの公開URL．未設定ならバケットURLを使う．
    IMAGE_PREFIX: str = 'spots'

    # Google Geocoding API
    GOOGLE_MAPS_API_KEY: str | None = None
    GEOCODING_URL: str = 'https://maps.googleapis.com/maps/api/geocode/json'

    HTTP_TIMEOUT_SECONDS: float = 30.0
    IMAGE_DOWNLOAD_CONCURRENCY: int = 5 # フィード同期時の画像ダウンロード同時実行数

    MIN_DESCRIPTION_LENGTH: int = 10
    TOP_SPOTS_LIMIT: int = 100

    LOG_LEVEL: str = 'INFO'

    @computed_field
    @property
    def DATABASE_URL(self) -> PostgresDsn:
        """
        他のフィールドの値からDATABASE_URLを構築する．
        """
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    @property
    def is_configured(self) -> bool:
        """
        外部サービス（DB・S3・Geocoding）の接続情報が揃っているか．
        """
        return bool(self.DB_PASSWORD and self.S3_BUCKET_NAME and self.GOOGLE_MAPS_API_KEY)

    def public_image_url(self, object_key: str) -> str:
        """
        S3のオブジェクトキーから公開URLを組み立てる．
        """
        if self.S3_PUBLIC_BASE_URL:
            return f"{self.S3_PUBLIC_BASE_URL.rstrip('/')}/{object_key}"
        if not self.S3_BUCKET_NAME:
            raise ValueError("画像ストレージが設定されていません (S3_BUCKET_NAME も S3_PUBLIC_BASE_URL も未設定)")
        return f"https://{self.S3_BUCKET_NAME}.s3.amazonaws.com/{object_key}"

    def object_key_from_url(self, image_url: str) -> str | None:
        """
        public_image_url()の逆変換．自前のストレージ以外のURLならNoneを返す．
        """
        prefixes = []
        if self.S3_PUBLIC_BASE_URL:
            prefixes.append(self.S3_PUBLIC_BASE_URL.rstrip('/') + '/')
        if self.S3_BUCKET_NAME:
            prefixes.append(f"https://{self.S3_BUCKET_NAME}.s3.amazonaws.com/")
        for prefix in prefixes:
            if image_url.startswith(prefix):
                return image_url[len(prefix):]
        return None

    # システム環境変数が見つからなかった場合にココを参照
    # スクリプトを走らせる時は，.envのあるディレクトリをカレントディレクトリにすること．
    model_config = SettingsConfigDict(
        env_file = '.env',
        env_file_encoding = 'utf-8',
        extra='ignore'
    )

@lru_cache
def get_settings() -> Settings:
    """
    Settingsインスタンスを生成し，キャッシュして返す．
    これにより，アプリ全体で単一のSettingsインスタンスが保証される．
    グローバルなインスタンスでもシングルトンは実現可能だが，依存性注入DIによる差し替え可能性が無い．
    """
    return Settings()
