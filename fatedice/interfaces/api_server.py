"""
FastAPI 接口服务
提供掷骰与 d20 替换控制的 HTTP API 接口

GM 身份通过请求头 X-GM-Key 校验；替换相关接口对玩家返回 403。
掷骰结果中不包含任何替换信息。
"""
import secrets
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .. import __version__
from ..core import get_logger, get_settings
from ..core.events import PromptAction, User
from ..core.game_engine import RollEngine

logger = get_logger(__name__)


# ============================================
# Pydantic 模型
# ============================================

class HealthResponse(BaseModel):
    """健康检查响应"""
    status: str
    engine_started: bool
    version: str = __version__


class OverrideState(BaseModel):
    """当前待生效的替换值"""
    value: int
    label: str


class OverrideActionRequest(BaseModel):
    """对话框提交"""
    action: PromptAction = Field(default=PromptAction.APPLY, description="apply/reset/cancel")
    value: Optional[Any] = Field(default=None, description="替换点数，非法输入按 0 处理")


class OverrideActionResponse(BaseModel):
    """对话框提交结果"""
    action: PromptAction
    value: Optional[int] = Field(default=None, description="保存后的值，取消时为空")
    label: str


class CheckRequest(BaseModel):
    """d20 检定请求"""
    modifier: int = Field(default=0, description="固定修正值", ge=-100, le=100)
    parts: List[str] = Field(default_factory=list, description="附加骰子项，如 1d4")
    advantage_mode: str = Field(default="normal", description="normal/advantage/disadvantage")
    elven_accuracy: bool = Field(default=False, description="优势时额外多掷一颗 d20")
    flavor: Optional[str] = Field(default=None, description="描述文本")
    subject: Optional[str] = Field(default=None, description="掷骰角色名称")


class FormulaRequest(BaseModel):
    """自由掷骰请求"""
    formula: str = Field(..., description="掷骰公式，如 2d6+3", min_length=1)
    flavor: Optional[str] = None
    subject: Optional[str] = None


# ============================================
# 依赖项
# ============================================

def get_engine(request: Request) -> RollEngine:
    return request.app.state.engine


def get_user(x_gm_key: Optional[str] = Header(default=None)) -> User:
    gm_key = get_settings().control.gm_key
    if x_gm_key and secrets.compare_digest(x_gm_key.encode("utf-8"), gm_key.encode("utf-8")):
        return User(name="gm", is_gm=True)
    return User(name="player", is_gm=False)


def require_gm(user: User = Depends(get_user)) -> User:
    if not user.is_gm:
        raise HTTPException(status_code=403, detail="仅 GM 可以使用 d20 替换")
    return user


# ============================================
# API 端点
# ============================================

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["系统"])
async def health_check(engine: RollEngine = Depends(get_engine)):
    """健康检查"""
    return HealthResponse(
        status="healthy" if engine.started else "degraded",
        engine_started=engine.started,
    )


@router.get("/override", response_model=OverrideState, tags=["替换"])
async def get_override(engine: RollEngine = Depends(get_engine), user: User = Depends(require_gm)):
    """查看当前待生效的替换值"""
    return OverrideState(value=engine.store.get(), label=engine.controls.label())


@router.get("/override/prompt", tags=["替换"])
async def get_override_prompt(engine: RollEngine = Depends(get_engine), user: User = Depends(require_gm)):
    """获取替换值对话框的描述"""
    return engine.controls.prompt_form().to_dict()


@router.post("/override", response_model=OverrideActionResponse, tags=["替换"])
async def submit_override(
    request: OverrideActionRequest,
    engine: RollEngine = Depends(get_engine),
    user: User = Depends(require_gm),
):
    """
    提交对话框

    - **apply**: 保存 value（1-20，其余按 0 处理）
    - **reset**: 清除替换
    - **cancel**: 不做修改
    """
    value = await engine.controls.submit(request.action, request.value)
    logger.info(f"GM 提交替换对话框: action={request.action.value}")
    return OverrideActionResponse(action=request.action, value=value, label=engine.controls.label())


@router.get("/controls", tags=["界面"])
async def list_controls(engine: RollEngine = Depends(get_engine), user: User = Depends(get_user)):
    """列出当前用户可见的控制按钮"""
    controls = await engine.scene_controls(user)
    return {"controls": [group.to_dict() for group in controls]}


@router.post("/rolls/check", tags=["掷骰"])
async def roll_check(request: CheckRequest, engine: RollEngine = Depends(get_engine)) -> Dict[str, Any]:
    """执行一次 d20 检定"""
    try:
        roll = await engine.pipeline.roll_check(
            modifier=request.modifier,
            parts=request.parts,
            advantage_mode=request.advantage_mode,
            elven_accuracy=request.elven_accuracy,
            flavor=request.flavor,
            subject=request.subject,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if roll is None:
        raise HTTPException(status_code=409, detail="掷骰已被取消")
    return roll.to_dict()


@router.post("/rolls", tags=["掷骰"])
async def roll_formula(request: FormulaRequest, engine: RollEngine = Depends(get_engine)) -> Dict[str, Any]:
    """执行一次自由掷骰"""
    try:
        roll = await engine.pipeline.roll_formula(request.formula, flavor=request.flavor, subject=request.subject)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if roll is None:
        raise HTTPException(status_code=409, detail="掷骰已被取消")
    return roll.to_dict()


# ============================================
# FastAPI 应用
# ============================================

def create_app(engine: Optional[RollEngine] = None) -> FastAPI:
    """
    创建应用

    Args:
        engine: 可选，预先构造的掷骰引擎（测试时注入独立数据库）
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """应用生命周期管理"""
        logger.info("API 服务启动中...")
        roll_engine = engine or RollEngine()
        await roll_engine.start()
        app.state.engine = roll_engine

        yield

        logger.info("API 服务关闭中...")
        try:
            await roll_engine.stop()
        except Exception as e:
            logger.error(f"关闭掷骰引擎失败: {e}")

    app = FastAPI(
        title="FateDice API",
        description="d20 检定掷骰服务",
        version=__version__,
        lifespan=lifespan
    )

    # CORS 中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # 生产环境应限制来源
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    return app


app = create_app()


# ============================================
# 启动函数
# ============================================

def run_server(host: Optional[str] = None, port: Optional[int] = None, reload: Optional[bool] = None):
    """
    启动 API 服务器

    Args:
        host: 监听地址，默认读取配置
        port: 监听端口，默认读取配置
        reload: 是否启用热重载，默认读取配置
    """
    import uvicorn

    api_config = get_settings().api_server
    host = host or api_config.host
    port = port or api_config.port
    reload = api_config.reload if reload is None else reload

    logger.info(f"启动 API 服务器: http://{host}:{port}")

    uvicorn.run(
        "fatedice.interfaces.api_server:app",
        host=host,
        port=port,
        reload=reload
    )


if __name__ == "__main__":
    run_server()
