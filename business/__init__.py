"""业务逻辑层 - 发票状态重算、收款与身份认证"""
