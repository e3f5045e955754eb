"""HTTP front end: ``GET /preview`` renders a card and answers with a JPEG."""

from ogimg.errors import DecodeError, FetchError, FontLoadError, PreviewError, TransformError
from ogimg.logging import audit, get_logger, trace
from ogimg.options import options_from_params
from ogimg.preview import Preview, encode_jpeg

log = get_logger("server")

ERROR_STATUS = {
    FetchError: 502,
    DecodeError: 422,
    TransformError: 422,
    FontLoadError: 500,
}


@trace
def create_app(preview: Preview):
    """Create a Flask app serving previews drawn by ``preview``."""
    from flask import Flask, Response, jsonify, request

    app = Flask(__name__)

    @app.route("/preview")
    def get_preview():
        try:
            options = options_from_params(request.args)
        except ValueError as e:
            audit("http.bad_request", logger=log, error=str(e))
            return jsonify({"error": str(e)}), 400

        try:
            image = preview.draw(options)
        except PreviewError as err:
            status = ERROR_STATUS.get(type(err), 500)
            audit("http.failed", logger=log, status=status, stage=err.stage, error=str(err))
            return jsonify({"error": str(err), "stage": err.stage}), status

        body = encode_jpeg(image, options.quality)
        audit("http.preview", logger=log, w=options.canvas_w, h=options.canvas_h, bytes=len(body))
        return Response(body, mimetype="image/jpeg")

    @app.route("/healthz")
    def healthz():
        return jsonify({"status": "ok"})

    return app
