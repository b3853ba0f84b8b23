from __future__ import annotations

import logging

from flask import Flask, flash, redirect, render_template, request, url_for

from frontend.api import APIError, PlacesAPI
from frontend.config import Config
from frontend.live import RelayListener
from frontend.sync import OfflineCache, PlacesStore, visible_places

logger = logging.getLogger(__name__)


def _int_or_none(raw: str | None) -> int | None:
    try:
        return int(raw) if raw not in (None, "") else None
    except ValueError:
        return None


def _place_form() -> dict:
    f = request.form
    rating = _int_or_none(f.get("rating"))
    return {
        "name": f.get("name", "").strip(),
        "location": f.get("location", "").strip(),
        "rating": rating if rating is not None else f.get("rating", ""),
        "description": f.get("description", "").strip(),
        "videoUrl": f.get("videoUrl", "").strip() or None,
        "categoryId": _int_or_none(f.get("categoryId")),
    }


def create_app(config: type | None = None, *, store: PlacesStore | None = None,
               listener: RelayListener | None = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config or Config)

    if store is None:
        api = PlacesAPI(app.config["API_BASE_URL"])
        store = PlacesStore(api, cache=OfflineCache(app.config["OFFLINE_CACHE_PATH"]))

    if listener is None and app.config["LIVE_UPDATES"]:
        listener = RelayListener(app.config["RELAY_URL"], store.apply_relay_event)
        listener.start_in_thread()
    if listener is not None:
        store.notifier = listener.send

    app.extensions["places_store"] = store
    app.extensions["relay_listener"] = listener

    @app.get("/")
    def index():
        search = request.args.get("search", "")
        min_rating = _int_or_none(request.args.get("minRating"))
        sort_by = request.args.get("sortBy", "")
        sort_order = request.args.get("sortOrder", "asc")

        store.load()
        if store.error:
            flash(f"Could not load places, showing cached copy: {store.error}", "warning")

        places = visible_places(store.places, search=search, min_rating=min_rating,
                                sort_by=sort_by, sort_order=sort_order)
        return render_template(
            "index.html",
            places=places,
            search=search,
            min_rating=min_rating,
            sort_by=sort_by,
            sort_order=sort_order,
            online=store.online,
            pending=len(store.pending),
            auto_refresh=store.auto_refresh,
            live=listener is not None and not listener.gave_up,
        )

    @app.route("/places/new", methods=["GET", "POST"])
    def place_new():
        if request.method == "POST":
            data = _place_form()
            try:
                store.add_place(data)
                flash("Place added." if store.online else "Place saved offline.", "success")
                return redirect(url_for("index"))
            except APIError as e:
                flash(f"Could not add place: {e.message}", "danger")
            return render_template("place_form.html", place=data, action=url_for("place_new"))
        return render_template("place_form.html", place={}, action=url_for("place_new"))

    @app.route("/places/<int(signed=True):place_id>/edit", methods=["GET", "POST"])
    def place_edit(place_id: int):
        place = store.get(place_id)
        if place is None:
            flash("Place not found.", "warning")
            return redirect(url_for("index"))

        if request.method == "POST":
            data = _place_form()
            try:
                store.update_place(place_id, data)
                flash("Place updated." if store.online else "Change saved offline.", "success")
                return redirect(url_for("index"))
            except APIError as e:
                flash(f"Could not update place: {e.message}", "danger")
            place = {**place, **data}
        return render_template("place_form.html", place=place,
                               action=url_for("place_edit", place_id=place_id))

    @app.post("/places/<int(signed=True):place_id>/delete")
    def place_delete(place_id: int):
        try:
            store.delete_place(place_id)
            flash("Place deleted." if store.online else "Delete saved offline.", "info")
        except APIError as e:
            flash(f"Could not delete place: {e.message}", "danger")
        return redirect(url_for("index"))

    @app.post("/connectivity")
    def toggle_online():
        result = store.set_online(not store.online)
        if store.online:
            flash(f"Back online: {result['replayed']} synced, {result['failed']} still pending.", "info")
        else:
            flash("Working offline. Changes will sync when you go back online.", "info")
        return redirect(url_for("index"))

    @app.post("/auto-refresh")
    def toggle_auto_refresh():
        if listener is None or listener.gave_up:
            flash("Live updates are not available.", "warning")
            return redirect(url_for("index"))
        enabled = not store.auto_refresh
        listener.send({"type": "toggle-auto-refresh", "enabled": enabled})
        flash(f"Auto-refresh {'enabled' if enabled else 'disabled'}.", "info")
        return redirect(url_for("index"))

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
