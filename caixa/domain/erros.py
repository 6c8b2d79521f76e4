"""
Erros de domínio do fechamento de caixa.

Cada erro carrega um ``codigo`` estável (usado nos resultados das
operações e nos logs) e uma mensagem pronta para o frentista.
"""

from __future__ import annotations

from typing import Optional


class CaixaErro(Exception):
    """Base de todos os erros do sistema."""
    codigo = "erro"
    mensagem_padrao = "Ocorreu um erro inesperado."

    def __init__(self, mensagem: Optional[str] = None):
        super().__init__(mensagem or self.mensagem_padrao)

    @property
    def mensagem(self) -> str:
        return str(self)


# -------------------------
# Validação (antes de qualquer chamada ao banco)
# -------------------------

class ValidacaoErro(CaixaErro):
    codigo = "validacao"


class EncerranteNaoInformado(ValidacaoErro):
    codigo = "encerrante_nao_informado"
    mensagem_padrao = "Informe o valor do encerrante."


class TotalNaoInformado(ValidacaoErro):
    codigo = "total_nao_informado"
    mensagem_padrao = "Preencha pelo menos um valor de pagamento."


class ClienteBloqueado(ValidacaoErro):
    codigo = "cliente_bloqueado"

    def __init__(self, nome: str):
        super().__init__(
            f"O cliente {nome} está bloqueado e não pode realizar novas compras a prazo."
        )


class PostoNaoSelecionado(ValidacaoErro):
    codigo = "posto_nao_selecionado"
    mensagem_padrao = "Nenhum posto selecionado. Selecione o posto antes de enviar o fechamento."


class ValorInvalido(ValidacaoErro):
    codigo = "valor_invalido"
    mensagem_padrao = "O valor deve ser maior que zero."


class QuantidadeInvalida(ValidacaoErro):
    codigo = "quantidade_invalida"
    mensagem_padrao = "Quantidade inválida."


class EstoqueInsuficiente(ValidacaoErro):
    codigo = "estoque_insuficiente"

    def __init__(self, disponivel: float):
        super().__init__(f"Estoque insuficiente! Disponível: {disponivel}")


# -------------------------
# Identidade
# -------------------------

class NaoAutenticado(CaixaErro):
    codigo = "nao_autenticado"
    mensagem_padrao = "Usuário não autenticado. Por favor, faça login novamente."


class FrentistaNaoIdentificado(CaixaErro):
    codigo = "frentista_nao_identificado"
    mensagem_padrao = "Frentista não identificado. Por favor selecione um frentista."


class FrentistaNaoEncontrado(CaixaErro):
    codigo = "frentista_nao_encontrado"
    mensagem_padrao = "Frentista selecionado não encontrado."


# -------------------------
# Idempotência / desfazer
# -------------------------

class FechamentoDuplicado(CaixaErro):
    codigo = "fechamento_duplicado"
    mensagem_padrao = "Você já realizou o fechamento para este turno hoje."


class NadaParaDesfazer(CaixaErro):
    codigo = "nada_para_desfazer"
    mensagem_padrao = "Nenhum envio encontrado para este turno."


# -------------------------
# Falhas remotas
# -------------------------

class FalhaEnvio(CaixaErro):
    codigo = "falha_envio"
    mensagem_padrao = "Ocorreu um erro inesperado ao processar o fechamento."
