"""请求体模型。

字段使用英文 snake_case，同时接受前端沿用的葡萄牙语字段名（如 ``Nome``、
``ClienteID``）作为别名。新建与更新共用同一模型：字段全部可选，
必填项由仓库检查并返回统一的 400 错误。
"""
from datetime import date, time
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RequestModel(BaseModel):
    """请求体基类：同时接受字段名与别名，忽略未知字段"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_data(self) -> dict:
        """转换为仓库使用的字典（去掉请求中未出现的字段，显式 null 保留）"""
        return self.model_dump(exclude_unset=True)


class CustomerIn(RequestModel):
    name: Optional[str] = Field(None, alias="Nome")
    address: Optional[str] = Field(None, alias="Endereco")
    phone: Optional[str] = Field(None, alias="Telefone")
    email: Optional[str] = Field(None, alias="Email")


class VehicleIn(RequestModel):
    customer_id: Optional[int] = Field(None, alias="ClienteID")
    model: Optional[str] = Field(None, alias="Modelo")
    year: Optional[int] = Field(None, alias="Ano")
    plate: Optional[str] = Field(None, alias="Placa")
    chassis_number: Optional[str] = Field(None, alias="Chassi")
    service_history: Optional[str] = Field(None, alias="historico_servicos")


class PartIn(RequestModel):
    name: Optional[str] = Field(None, alias="NomePeca")
    description: Optional[str] = Field(None, alias="Descricao")
    quantity: Optional[int] = Field(None, alias="Quantidade")
    cost_price: Optional[Decimal] = Field(None, alias="PrecoCusto")
    sale_price: Optional[Decimal] = Field(None, alias="PrecoVenda")
    minimum_level: Optional[int] = Field(None, alias="NivelMinimo")


class StockAdjustmentIn(RequestModel):
    quantidade: Optional[int] = Field(None, alias="quantity")
    operacao: Optional[str] = Field(None, alias="operation")


class OrderPartIn(RequestModel):
    part_id: Optional[int] = Field(None, alias="PecaID")
    quantity: Optional[int] = Field(None, alias="Quantidade")


class ServiceOrderIn(RequestModel):
    vehicle_id: Optional[int] = Field(None, alias="VeiculoID")
    employee_id: Optional[int] = Field(None, alias="FuncionarioID")
    scheduled_date: Optional[date] = Field(None, alias="DataAgendamento")
    scheduled_time: Optional[time] = Field(None, alias="HoraAgendamento")
    service_type: Optional[str] = Field(None, alias="TipoServico")
    status: Optional[str] = Field(None, alias="Status")
    description: Optional[str] = Field(None, alias="Descricao")
    total_value: Optional[Decimal] = Field(None, alias="ValorTotal")
    parts: Optional[List[OrderPartIn]] = Field(None, alias="pecas")


class InvoiceIn(RequestModel):
    """发票请求体；付款状态由系统计算，不接受客户端传入"""
    service_order_id: Optional[int] = Field(None, alias="ServicoID")
    issue_date: Optional[date] = Field(None, alias="DataEmissao")
    total_due: Optional[Decimal] = Field(None, alias="ValorTotalFatura")


class PaymentIn(RequestModel):
    invoice_id: Optional[int] = Field(None, alias="FaturaID")
    payment_date: Optional[date] = Field(None, alias="DataPagamento")
    amount_paid: Optional[Decimal] = Field(None, alias="ValorPago")
    method: Optional[str] = Field(None, alias="MetodoPagamento")


class RegisterIn(RequestModel):
    email: Optional[str] = None
    password: Optional[str] = None
    nome_completo: Optional[str] = Field(None, alias="full_name")


class LoginIn(RequestModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshIn(RequestModel):
    refresh_token: Optional[str] = Field(None, alias="refreshToken")
