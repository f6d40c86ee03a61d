from datetime import date

import altair as alt
import pandas as pd
import requests
import streamlit as st

st.set_page_config(page_title="MindSpace", page_icon="🌿", layout="centered")

API_BASE = st.text_input("API base URL", value="http://127.0.0.1:8000")

if "token" not in st.session_state:
    st.session_state.token = None
if "dev_mode" not in st.session_state:
    st.session_state.dev_mode = False
if "quiz" not in st.session_state:
    st.session_state.quiz = None
if "quiz_result" not in st.session_state:
    st.session_state.quiz_result = None


def api_headers() -> dict:
    if st.session_state.token:
        return {"Authorization": f"Bearer {st.session_state.token}"}
    return {}


def api_url(path: str) -> str:
    return f"{API_BASE}{path}"


def safe_json(resp: requests.Response):
    content_type = resp.headers.get("content-type", "")
    if "application/json" not in content_type:
        return None
    try:
        return resp.json()
    except ValueError:
        return None


def show_response_error(resp: requests.Response, path: str, fallback_message: str) -> None:
    url = api_url(path)
    payload = safe_json(resp)
    if payload and isinstance(payload, dict):
        detail = payload.get("detail", fallback_message)
        st.error(f"{fallback_message} ({resp.status_code}) | {url} | {detail}")
        return
    text = (resp.text or "").strip()
    snippet = text[:500] if text else "No response body."
    st.error(f"{fallback_message} ({resp.status_code}) | {url} | {snippet}")


def api_get(path: str, params=None):
    try:
        return requests.get(api_url(path), headers=api_headers(), params=params, timeout=10)
    except requests.RequestException as exc:
        st.error(f"Request failed: {exc}")
        return None


def api_post(path: str, json=None, data=None):
    try:
        return requests.post(
            api_url(path),
            headers=api_headers(),
            json=json,
            data=data,
            timeout=10,
        )
    except requests.RequestException as exc:
        st.error(f"Request failed: {exc}")
        return None


def show_tier(result: dict) -> None:
    tier = result.get("tier") or {}
    level = tier.get("level") or result.get("level", "")
    message = f"**{level}**: score {result.get('total_score', result.get('score'))} out of {result.get('max_score')}"
    tag = tier.get("tag")
    if tag == "warning":
        st.warning(message)
    elif tag == "info":
        st.info(message)
    else:
        st.success(message)
    if tier.get("description"):
        st.write(tier["description"])
    steps = result.get("recommended_steps") or []
    if steps:
        st.markdown("**Recommended next steps**")
        for step in steps:
            st.markdown(f"- {step}")


st.title("MindSpace")
st.caption("Not a diagnosis. If you feel unsafe contact local emergency services.")

login_tab, quiz_tab, history_tab, mood_tab = st.tabs(
    ["Account", "Stress Assessment", "History", "Mood & Achievements"]
)

health_resp = api_get("/health")
if health_resp is None:
    st.error("Backend check failed. Start backend with: uvicorn mindspace.backend.app.main:app --reload --port 8000")
elif health_resp.ok:
    payload = safe_json(health_resp) or {}
    st.session_state.dev_mode = bool(payload.get("dev_mode"))
else:
    snippet = (health_resp.text or "").strip()
    st.error(
        f"Backend unhealthy ({health_resp.status_code}) | {api_url('/health')} | "
        f"{snippet[:500] if snippet else 'No response body.'}"
    )

with login_tab:
    st.subheader("Sign up")
    with st.form("register_form"):
        reg_email = st.text_input("Email", key="reg_email")
        reg_password = st.text_input("Password", type="password", key="reg_password")
        if st.form_submit_button("Create account"):
            if not reg_email or not reg_password:
                st.warning("Enter an email and password.")
            else:
                resp = api_post("/auth/register", json={"email": reg_email, "password": reg_password})
                if resp is not None and resp.ok:
                    payload = safe_json(resp) or {}
                    st.session_state.token = payload.get("access_token")
                    st.success("Account created. You are signed in.")
                elif resp is not None:
                    show_response_error(resp, "/auth/register", "Registration failed.")

    st.subheader("Login")
    with st.form("login_form"):
        login_email = st.text_input("Email", key="login_email")
        login_password = st.text_input("Password", type="password", key="login_password")
        if st.form_submit_button("Sign in"):
            if not login_email or not login_password:
                st.warning("Enter your email and password.")
            else:
                resp = api_post(
                    "/auth/login",
                    data={"username": login_email, "password": login_password},
                )
                if resp is not None and resp.ok:
                    payload = safe_json(resp) or {}
                    st.session_state.token = payload.get("access_token")
                    st.success("Signed in.")
                elif resp is not None:
                    show_response_error(resp, "/auth/login", "Login failed.")

    if st.session_state.token:
        st.info("Authenticated.")

with quiz_tab:
    sample_size = st.slider("Number of questions", min_value=5, max_value=20, value=10)
    if st.button("Start new assessment") or st.session_state.quiz is None:
        resp = api_get("/stress/quiz", params={"sample_size": sample_size})
        if resp is not None and resp.ok:
            st.session_state.quiz = safe_json(resp)
            st.session_state.quiz_result = None
        elif resp is not None:
            show_response_error(resp, "/stress/quiz", "Unable to load the assessment.")

    quiz = st.session_state.quiz
    if quiz:
        st.subheader(quiz["title"])
        st.caption(quiz["description"])
        with st.form("stress_quiz_form"):
            answers = {}
            for index, question in enumerate(quiz["questions"], start=1):
                labels = [option["label"] for option in question["options"]]
                choice = st.radio(
                    f"{index}. {question['question']}",
                    labels,
                    index=None,
                    key=f"quiz_{question['id']}",
                )
                if choice is not None:
                    answers[question["id"]] = question["options"][labels.index(choice)]["value"]
            submitted = st.form_submit_button("Complete")
        if submitted:
            if len(answers) < len(quiz["questions"]):
                st.warning("Answer every question to see your result.")
            else:
                body = {"question_ids": [q["id"] for q in quiz["questions"]], "answers": answers}
                path = "/stress/assessments" if st.session_state.token else "/stress/evaluate"
                resp = api_post(path, json=body)
                if resp is not None and resp.ok:
                    result = safe_json(resp) or {}
                    if path == "/stress/assessments":
                        tier = next(
                            (item for item in quiz["scoring"] if item["level"] == result.get("level")),
                            {"level": result.get("level")},
                        )
                        result = {**result, "tier": tier, "total_score": result.get("score")}
                    st.session_state.quiz_result = result
                elif resp is not None:
                    show_response_error(resp, path, "Unable to score the assessment.")
        if st.session_state.quiz_result:
            show_tier(st.session_state.quiz_result)
            if not st.session_state.token:
                st.caption("Sign in to keep a history of your results.")

with history_tab:
    if not st.session_state.token:
        st.warning("Sign in on the Account tab to continue.")
    else:
        limit = st.number_input("Assessments to show", min_value=1, max_value=100, value=10)
        resp = api_get("/stress/assessments", params={"limit": int(limit)})
        if resp is not None and resp.ok:
            rows = safe_json(resp) or []
            if not rows:
                st.info("No saved assessments yet.")
            else:
                df = pd.DataFrame(
                    [
                        {
                            "completed_at": pd.to_datetime(row["completed_at"]),
                            "score": row["score"],
                            "max_score": row["max_score"],
                            "level": row["level"],
                        }
                        for row in rows
                    ]
                )
                chart = (
                    alt.Chart(df)
                    .mark_line(point=True)
                    .encode(
                        x=alt.X("completed_at:T", title="Completed"),
                        y=alt.Y("score:Q", title="Score"),
                        color=alt.Color("level:N", title="Level"),
                        tooltip=["completed_at:T", "score:Q", "max_score:Q", "level:N"],
                    )
                )
                st.altair_chart(chart, use_container_width=True)
                st.dataframe(df, use_container_width=True)
        elif resp is not None:
            show_response_error(resp, "/stress/assessments", "Unable to load history.")

with mood_tab:
    if not st.session_state.token:
        st.warning("Sign in on the Account tab to continue.")
    else:
        st.subheader("Log your mood")
        with st.form("mood_form"):
            mood = st.select_slider(
                "How are you feeling?",
                options=[1, 2, 3, 4, 5],
                value=3,
                format_func=lambda v: {1: "Very sad", 2: "Sad", 3: "Neutral", 4: "Happy", 5: "Very happy"}[v],
            )
            note = st.text_area("Note (optional)", max_chars=500)
            tags = st.text_input("Tags (comma separated)")
            entry_date = date.today()
            if st.session_state.dev_mode:
                st.caption("Dev mode: date controls enabled.")
                entry_date = st.date_input("Entry date", value=date.today())
            if st.form_submit_button("Save mood"):
                body = {
                    "mood": mood,
                    "note": note or None,
                    "tags": [tag.strip() for tag in tags.split(",") if tag.strip()],
                    "entry_date": entry_date.isoformat(),
                }
                resp = api_post("/mood", json=body)
                if resp is not None and resp.ok:
                    payload = safe_json(resp) or {}
                    st.success(f"Mood saved. Current streak: {payload.get('streak_count', 0)} day(s).")
                elif resp is not None:
                    show_response_error(resp, "/mood", "Unable to save mood.")

        st.subheader("Achievements")
        resp = api_get("/achievements")
        if resp is not None and resp.ok:
            payload = safe_json(resp) or {}
            col1, col2, col3 = st.columns(3)
            col1.metric("Mood logs", payload.get("total_mood_logs", 0))
            col2.metric("Current streak", payload.get("streak_count", 0))
            col3.metric("Best streak", payload.get("best_streak", 0))
            for item in payload.get("achievements", []):
                if item.get("newly_unlocked"):
                    unlock = api_post("/achievements", json={"achievement_id": item["id"]})
                    if unlock is not None and unlock.ok:
                        st.balloons()
                        st.success(f"Achievement unlocked: {item['title']}")
                marker = "✅" if item["is_unlocked"] else "⬜"
                progress = min(item["current_progress"], item["requirement"])
                st.write(f"{marker} **{item['title']}**: {item['description']} ({progress}/{item['requirement']})")
        elif resp is not None:
            show_response_error(resp, "/achievements", "Unable to load achievements.")
