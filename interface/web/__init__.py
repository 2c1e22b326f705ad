"""Web 通道 - FastAPI 应用与 uvicorn 服务器"""
