# app.py
"""
Entrypoint da aplicação.

Uso:
  python app.py resumo -m movimentos.csv -n niveis.csv --metodo FIFO
  python app.py giro -m movimentos.xlsx -n niveis.xlsx -i itens.xlsx --inicio 2025-01-01 --fim 2025-03-31
  python app.py aging -m movimentos.csv -n niveis.csv --por bin
  python app.py converter 2 KG G -c conversoes.csv
"""

from custeio.adapters.cli import main

if __name__ == "__main__":
    main()
