from typing import Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):

    embedding_backend: Literal["openai", "sentence_transformer"] = "openai"
    embedding_model: str = "text-embedding-3-small"
    embedding_base_url: Optional[str] = None
    embedding_api_key: Optional[str] = None
    embedding_timeout: Optional[float] = 30.0
    # E5-style models expect "passage: " / "query: "
    embedding_passage_prefix: str = ""
    embedding_query_prefix: str = ""

    vector_backend: Literal["chroma", "memory"] = "chroma"
    chroma_host: str = "localhost"
    chroma_port: int = 8001
    chroma_tenant: str = "default_tenant"
    chroma_database: str = "default_database"
    index_name: str = "embeddings"

    chunk_size: int = 512
    chunk_overlap: int = 50

    rag_top_k: int = 5
    rag_fetch_multiplier: int = 2
    rag_min_score: float = 0.0
    rag_score_ratio: float = 0.0

    extract_timeout: Optional[float] = 60.0

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_prefix = "DOC_PIPELINE_"
        extra = "ignore"


settings = Settings()
