"""Exceções do domínio de pedidos."""


class EmporioError(Exception):
    """Base de todas as exceções da aplicação."""

    pass


class ValidationError(EmporioError):
    """Campo obrigatório ausente/vazio ou item inválido. Nada é persistido."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class NotFoundError(EmporioError):
    """Pedido inexistente."""

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Pedido não encontrado: {order_id}")


class PersistenceError(EmporioError):
    """Falha de transação/armazenamento. A operação inteira foi desfeita."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Falha ao gravar no banco: {reason}")


class DispatchError(EmporioError):
    """Canal de mensagens indisponível ou não configurado."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)
