"""
门店业务配置接口 - 支持可替换的门店配置

新门店可以实现自己的配置，替换默认配置。
"""
from abc import ABC, abstractmethod
from typing import List, Dict, Any


class ShopConfig(ABC):
    """门店配置抽象基类"""

    @abstractmethod
    def get_default_service_status(self) -> str:
        """获取新建服务单的默认状态"""
        pass

    @abstractmethod
    def get_seed_employees(self) -> List[Dict[str, Any]]:
        """获取初始化员工（技师）"""
        pass

    @abstractmethod
    def get_seed_parts(self) -> List[Dict[str, Any]]:
        """获取初始化库存零件"""
        pass

    @abstractmethod
    def get_seed_customers(self) -> List[Dict[str, Any]]:
        """获取示例顾客"""
        pass


class RepairShopConfig(ShopConfig):
    """汽修门店默认配置"""

    def get_default_service_status(self) -> str:
        return "Agendado"

    def get_seed_employees(self) -> List[Dict[str, Any]]:
        return [
            {"name": "Carlos Oliveira", "role": "Mecânico"},
            {"name": "Ana Souza", "role": "Eletricista"},
        ]

    def get_seed_parts(self) -> List[Dict[str, Any]]:
        return [
            {"name": "Óleo Motor 5W30", "description": "Óleo sintético para motor",
             "quantity": 50, "cost_price": 25.00, "sale_price": 35.00, "minimum_level": 10},
            {"name": "Filtro de Ar", "description": "Filtro de ar para diversos modelos",
             "quantity": 30, "cost_price": 15.00, "sale_price": 25.00, "minimum_level": 5},
            {"name": "Pastilha de Freio", "description": "Pastilha de freio dianteira",
             "quantity": 20, "cost_price": 45.00, "sale_price": 65.00, "minimum_level": 8},
        ]

    def get_seed_customers(self) -> List[Dict[str, Any]]:
        return [
            {"name": "João Silva", "address": "Rua das Flores, 123",
             "phone": "(11) 99999-9999", "email": "joao@email.com"},
            {"name": "Maria Santos", "address": "Av. Principal, 456",
             "phone": "(11) 88888-8888", "email": "maria@email.com"},
        ]


# 全局门店配置实例（可以在 app.py 中替换）
shop_config: ShopConfig = RepairShopConfig()
