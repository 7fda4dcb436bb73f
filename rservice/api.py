from dataclasses import asdict

from quart import Quart, jsonify

from .ctl import ServiceRunLoop


def create_app(run_loop: ServiceRunLoop) -> Quart:
    app = Quart(__name__)
    ctx = run_loop.ctx

    @app.route('/service/status', methods=['GET'])
    async def handle_status():
        state = run_loop.state
        return jsonify({
            'variant': ctx.variant.name,
            'state': state.value if state else None,
            'control_port': ctx.control_port,
            'config_file': str(run_loop.config_file)
            if run_loop.config_file else None,
        })

    @app.route('/service/nodes', methods=['GET'])
    async def handle_nodes():
        if run_loop.nodes is None:
            return 'No topology discovered', 404
        return jsonify([asdict(n) for n in run_loop.nodes])

    return app
