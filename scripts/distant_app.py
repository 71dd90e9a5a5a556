"""
DistApp: browse the preprocessed circum-Antarctic layers.

Run:
    streamlit run scripts/distant_app.py -- --config src/JSONs/distant_config.json
"""
import argparse
import streamlit         as st
from distant_config      import load_config, setup_logging
from distant_display     import DistantDisplay

@st.cache_resource
def get_display(P_json):
    config = load_config(P_json)
    logger = setup_logging(log_level=config.log_level)
    return DistantDisplay(config, logger=logger)

def run_app(P_json=None):
    st.set_page_config(page_title="DistApp", layout="wide")
    display = get_display(P_json)
    st.title("DistApp - Circum-Antarctic Modelled Data Visualization")
    choices = display.choices()
    with st.sidebar:
        title          = st.selectbox("Select Map Type", list(choices.keys()))
        show_coastline = st.checkbox("Show Coastline", value=True)
        show_ccamlr    = st.checkbox("Show CCAMLR Areas", value=False)
    key   = choices[title]
    state = display.show(key, show_coastline=show_coastline, show_ccamlr=show_ccamlr)
    if not state.available:
        st.warning(state.message)
        return
    fig, png, table = display.render(state)
    st.pyplot(fig)
    with st.sidebar:
        st.download_button("Download Plot", png, display.png_name(key), "image/png")
        st.download_button("Download Data", table.to_csv(index=False), display.csv_name(key), "text/csv")
    st.dataframe(table, height=400)

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="DISTANT layer viewer (run through `streamlit run`).")
    parser.add_argument("--config", help="Path to JSON config file (default: built-in defaults)")
    args, _ = parser.parse_known_args()
    run_app(args.config)
