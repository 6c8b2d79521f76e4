# app.py
"""
Entrypoint da aplicação.

Uso:
  python app.py migrate --db caixa.db
  python app.py params set --posto-id 1
  python app.py sessao --user-id <id> --email frentista@posto.com
  python app.py fechar --encerrante 1.000,00 --dinheiro 600 --pix 400
  python app.py historico --frentista-id 1 --exportar historico.xlsx
"""

from caixa.adapters.cli import main

if __name__ == "__main__":
    main()
