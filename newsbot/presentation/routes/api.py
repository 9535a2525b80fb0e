"""API路由 - 新闻、摘要、过滤器、模型配置与模型目录"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from loguru import logger
from pydantic import BaseModel

from ...domain.digest.prompt import DEFAULT_DIGEST_INSTRUCTIONS
from ...errors import ConflictError, NotFoundError, ValidationError
from ...services.container import Container

router = APIRouter()


class FilterPayload(BaseModel):
    """过滤器请求体"""
    name: str
    pattern: str


class LlmConfigPayload(BaseModel):
    """模型配置请求体"""
    model: str
    instructions: str


class LlmPayload(BaseModel):
    name: str
    alias: str


class LlmUpdatePayload(BaseModel):
    name: Optional[str] = None
    alias: Optional[str] = None


class LlmModelPayload(BaseModel):
    llm_id: int
    name: str


class LlmModelUpdatePayload(BaseModel):
    llm_id: Optional[int] = None
    name: Optional[str] = None


def get_container(request: Request) -> Container:
    return request.app.state.container


def _parse_ids(raw: str) -> List[int]:
    ids: List[int] = []
    for token in raw.split(","):
        token = token.strip()
        if not token:
            continue
        try:
            ids.append(int(token))
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid news item id: {token!r}")
    return ids


@router.get("/news-items")
async def get_news_items(
    ids: str = Query(..., description="逗号分隔的新闻 id，例如 1,2,3"),
    container: Container = Depends(get_container),
):
    """按 id 顺序返回新闻，不存在的 id 返回 null"""
    try:
        items = await container.news_query.execute(_parse_ids(ids))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"items": jsonable_encoder(items)}


@router.get("/digests")
async def list_digests(
    limit: int = Query(50, ge=1, le=500, description="返回数量"),
    container: Container = Depends(get_container),
):
    """最新的摘要在前"""
    digests = await container.digests.list_digests(limit=limit)
    return {"items": jsonable_encoder(digests)}


@router.get("/filters")
async def list_filters(container: Container = Depends(get_container)):
    return {"items": jsonable_encoder(await container.filters.list_filters())}


@router.post("/filters", status_code=201)
async def create_filter(payload: FilterPayload, container: Container = Depends(get_container)):
    try:
        created = await container.filters.create_filter(payload.name, payload.pattern)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"[过滤器] 已创建: id={created.id} name={created.name!r}")
    return jsonable_encoder(created)


@router.put("/filters/{filter_id}")
async def update_filter(filter_id: int, payload: FilterPayload, container: Container = Depends(get_container)):
    try:
        updated = await container.filters.update_filter(filter_id, payload.name, payload.pattern)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    logger.info(f"[过滤器] 已更新: id={filter_id}")
    return jsonable_encoder(updated)


@router.delete("/filters/{filter_id}", status_code=204)
async def delete_filter(filter_id: int, container: Container = Depends(get_container)):
    try:
        await container.filters.delete_filter(filter_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    logger.info(f"[过滤器] 已删除: id={filter_id}")


@router.get("/llm-config")
async def get_llm_config(container: Container = Depends(get_container)):
    """数据库中没有配置时返回进程默认值"""
    settings = await container.llm_config.get()
    if settings is None:
        return {
            "model": container.config.publishing.llm_model,
            "instructions": DEFAULT_DIGEST_INSTRUCTIONS,
            "updated_at": None,
            "is_default": True,
        }
    return {**jsonable_encoder(settings), "is_default": False}


@router.put("/llm-config")
async def put_llm_config(payload: LlmConfigPayload, container: Container = Depends(get_container)):
    try:
        settings = await container.llm_config.upsert(payload.model, payload.instructions)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"[模型配置] 已更新: model={settings.model}")
    return {**jsonable_encoder(settings), "is_default": False}


def _catalog_error(e: Exception) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ConflictError):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


@router.get("/llms")
async def list_llms(container: Container = Depends(get_container)):
    return {"items": jsonable_encoder(await container.llm_catalog.list_llms())}


@router.get("/llms/{llm_id}/models")
async def list_llm_models(llm_id: int, container: Container = Depends(get_container)):
    try:
        models = await container.llm_catalog.list_models(llm_id)
    except (ValidationError, NotFoundError) as e:
        raise _catalog_error(e)
    return {"items": jsonable_encoder(models)}


@router.post("/llms", status_code=201)
async def create_llm(payload: LlmPayload, container: Container = Depends(get_container)):
    try:
        created = await container.llm_catalog.create_llm(payload.name, payload.alias)
    except ValidationError as e:
        raise _catalog_error(e)
    logger.info(f"[模型目录] 已创建提供方: id={created.id} name={created.name!r}")
    return jsonable_encoder(created)


@router.put("/llms/{llm_id}")
async def update_llm(llm_id: int, payload: LlmUpdatePayload, container: Container = Depends(get_container)):
    try:
        updated = await container.llm_catalog.update_llm(llm_id, name=payload.name, alias=payload.alias)
    except (ValidationError, NotFoundError) as e:
        raise _catalog_error(e)
    return jsonable_encoder(updated)


@router.delete("/llms/{llm_id}", status_code=204)
async def delete_llm(llm_id: int, container: Container = Depends(get_container)):
    try:
        await container.llm_catalog.delete_llm(llm_id)
    except (ValidationError, NotFoundError, ConflictError) as e:
        raise _catalog_error(e)
    logger.info(f"[模型目录] 已删除提供方: id={llm_id}")


@router.post("/llm-models", status_code=201)
async def create_llm_model(payload: LlmModelPayload, container: Container = Depends(get_container)):
    try:
        created = await container.llm_catalog.create_model(payload.llm_id, payload.name)
    except (ValidationError, NotFoundError) as e:
        raise _catalog_error(e)
    logger.info(f"[模型目录] 已创建模型: id={created.id} name={created.name!r}")
    return jsonable_encoder(created)


@router.put("/llm-models/{model_id}")
async def update_llm_model(
    model_id: int,
    payload: LlmModelUpdatePayload,
    container: Container = Depends(get_container),
):
    try:
        updated = await container.llm_catalog.update_model(model_id, llm_id=payload.llm_id, name=payload.name)
    except (ValidationError, NotFoundError) as e:
        raise _catalog_error(e)
    return jsonable_encoder(updated)


@router.delete("/llm-models/{model_id}", status_code=204)
async def delete_llm_model(model_id: int, container: Container = Depends(get_container)):
    try:
        await container.llm_catalog.delete_model(model_id)
    except (ValidationError, NotFoundError, ConflictError) as e:
        raise _catalog_error(e)
    logger.info(f"[模型目录] 已删除模型: id={model_id}")
