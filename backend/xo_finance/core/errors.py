"""Domain error taxonomy.

Every error carries an HTTP status, a stable machine ``code`` and a message
that is safe to show to the end user. ``detail`` is for logs only and is never
sent to the client.
"""

from __future__ import annotations

from typing import Optional


class AppError(Exception):
    status_code: int = 500
    code: str = "internal_error"
    message: str = "Ocorreu um erro inesperado."
    retryable: bool = False

    def __init__(self, message: Optional[str] = None, *, detail: Optional[str] = None) -> None:
        if message:
            self.message = message
        self.detail = detail or self.message
        super().__init__(self.detail)

    def to_payload(self) -> dict:
        return {"detail": self.message, "code": self.code, "retryable": self.retryable}


class InvalidInput(AppError):
    status_code = 400
    code = "invalid_input"
    message = "Dados inválidos ou incompletos."


class PermissionDenied(AppError):
    status_code = 403
    code = "permission_denied"
    message = "Acesso negado."


class NotFound(AppError):
    status_code = 404
    code = "not_found"
    message = "Recurso não encontrado."


class ModelOutputInvalid(AppError):
    status_code = 422
    code = "model_output_invalid"
    message = "Não foi possível identificar os dados principais do documento."
    retryable = True


class ModelUnavailable(AppError):
    status_code = 503
    code = "model_unavailable"
    message = "O serviço de IA está indisponível no momento. Tente novamente."
    retryable = True


class PaymentGatewayError(AppError):
    status_code = 502
    code = "payment_gateway_error"
    message = "Falha ao comunicar com o provedor de pagamentos. Tente novamente."
    retryable = True


class ConfigurationError(AppError):
    status_code = 500
    code = "configuration_error"
    message = "Erro de configuração do servidor."
