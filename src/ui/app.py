"""
Streamlit front end: code editor on the left, rendered review on the right.

Run with: streamlit run src/ui/app.py
"""

import streamlit as st
import streamlit.components.v1 as components

from src.ui.client import ReviewAPIClient
from src.ui.state import LANGUAGES, ReviewSession

st.set_page_config(page_title="AI Code Reviewer", layout="wide")


@st.cache_resource
def get_client() -> ReviewAPIClient:
    return ReviewAPIClient()


def get_session() -> ReviewSession:
    if "review_session" not in st.session_state:
        st.session_state.review_session = ReviewSession()
        st.session_state.code_input = st.session_state.review_session.code
    return st.session_state.review_session


def on_reset():
    session = get_session()
    session.reset_editor()
    st.session_state.code_input = session.code


session = get_session()

st.title("AI Code Reviewer")
st.caption("Paste code, pick a language and click Review.")

editor, viewer = st.columns(2)

with editor:
    session.language = st.selectbox(
        "Language", LANGUAGES, index=LANGUAGES.index(session.language), key="language_input"
    )
    session.code = st.text_area("Code", height=420, key="code_input")
    with st.expander("Highlighted preview", expanded=bool(session.code)):
        st.code(session.code, language=session.language)

    review_col, reset_col, copy_col = st.columns(3)
    review_clicked = review_col.button(
        "Review", type="primary", key="review", disabled=not session.can_review()
    )
    reset_col.button("Reset", key="reset", on_click=on_reset)
    copy_clicked = copy_col.button("Copy code", key="copy", disabled=not session.code)

    if copy_clicked:
        components.html(session.copy_code_to_clipboard(), height=30)

if review_clicked:
    with viewer, st.spinner("Reviewing your code..."):
        session.review_code(get_client())

with viewer:
    st.subheader("Review")
    if session.review:
        st.markdown(session.review)
        payload = session.download_review()
        st.download_button(
            "Download review", data=payload.data, file_name=payload.file_name,
            mime=payload.mime, key="download",
        )
    else:
        st.info("The review will appear here.")
