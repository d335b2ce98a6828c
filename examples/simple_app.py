"""
=============================================================================
EXAMPLE: SIMPLE APP
=============================================================================

A small application showing the whole toolkit:

    GET  /                  plain text
    GET  /hello/:name       path parameter
    POST /api/data          JSON body in, text out
    GET  /especial          route-level middleware
    GET  /admin             middleware that short-circuits
    GET  /perfil            cookies in and out
    GET  /pagina/:name      rendered file from ./public

Run it from the repository root:

    python examples/simple_app.py

    curl http://localhost:3000/hello/world
    curl -X POST -H 'Content-Type: application/json' \\
         -d '{"nome":"Pedro"}' http://localhost:3000/api/data
    curl -b 'user=Pedro' -i http://localhost:3000/perfil

=============================================================================
"""

import logging
import sys
from pathlib import Path

# Add src to path so the example runs without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from httpkit import Json, Respond, Server, TemplateNotFound, request_logger


logger = logging.getLogger("simple_app")


def main():
    server = Server(port=3000, public_root=str(Path(__file__).parent / "public"))

    # Global middleware
    server.use(request_logger())

    @server.get("/")
    def index(ctx):
        return "Olá mundo! 🌍✨"

    @server.get("/hello/:name")
    def hello(ctx):
        return f"Eae {ctx.params['name'].capitalize()}!"

    @server.post("/api/data")
    def data(ctx):
        return f"Vce enviou isso aqui: {Json(ctx.body).render()} de jason"

    # Middleware for a single route
    def log_user_agent(ctx):
        logger.info(f"Rota nada especial acessada por: {ctx.get_header('User-Agent')}")

    server.get("/especial", server.with_middleware(log_user_agent), lambda ctx: "Você realmente nao e especial")

    def require_token(ctx):
        if ctx.get_query("token") != "segredo":
            return Respond("Acesso negado", status=403)
        return None

    @server.get("/admin", middlewares=[require_token])
    def admin(ctx):
        return {"status": "ok", "admin": True}

    @server.get("/perfil")
    def profile(ctx):
        user = ctx.cookies.get("user")
        if user is None:
            ctx.cookies.set("user", "visitante", path="/", max_age=3600, http_only=True)
            return "Olá, visitante!"
        return Json({"status": "ok", "user": user}, content_type="application/json")

    @server.get("/pagina/:name")
    def page(ctx):
        try:
            return server.render(f"{ctx.params['name']}.html.tmpl", **ctx.query)
        except TemplateNotFound:
            return server.render(f"{ctx.params['name']}.html")

    server.start()


if __name__ == "__main__":
    main()
