"""
Servidor de desenvolvimento da Fila CMEI.

Em produção (Cloud Run) o WSGI server importa `app` daqui; localmente:
$ python run.py
"""

import os

from filacmei import create_app

app = create_app()

if __name__ == "__main__":
    # Cloud Run injeta PORT; localmente usa 5000
    porta = int(os.environ.get('PORT', '5000'))
    app.run(host='0.0.0.0', port=porta, debug=app.config['DEBUG'])
