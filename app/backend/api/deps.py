from functools import lru_cache

from fastapi import Depends

from app.backend.config import Settings, load_settings
from app.backend.ml.pipeline import GesturePipeline
from app.backend.ml.runtime import ClassifierRuntime


@lru_cache
def get_settings() -> Settings:
    return load_settings()


@lru_cache
def get_runtime() -> ClassifierRuntime:
    # модель грузится один раз на процесс; ошибка загрузки не роняет сервис
    return ClassifierRuntime.from_settings(get_settings())


def get_pipeline(
    runtime: ClassifierRuntime = Depends(get_runtime),
    settings: Settings = Depends(get_settings),
) -> GesturePipeline:
    return GesturePipeline(runtime, settings)
